# Sketch+Chat - Freehand Drawing Conversations with a Multimodal Model
# Author: Sketch+Chat Team
# Version: 1.0.0

"""
Core modules for the drawing-to-reply system:
- config: Credential and static generation settings
- canvas: Freehand drawing surface and stroke state machine
- model_client: Multimodal model backends
- analysis: Request construction and reply disambiguation
- ui: Main application window
"""

__version__ = "1.0.0"
__author__ = "Sketch+Chat Team"
