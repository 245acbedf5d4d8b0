#!/usr/bin/env python
"""
Sketch+Chat - Main Entry Point
==============================
Run the drawing-to-reply application.
"""

from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent / ".env")

from sketchchat.ui import main

if __name__ == "__main__":
    main()
