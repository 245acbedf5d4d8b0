"""
UI Module - Main Application Window
===================================
Full-window drawing canvas with a send button, a clear button and a
result panel. Combines the drawing surface and the analysis pipeline
into a single OpenCV event loop.
"""

import argparse
from functools import lru_cache
from typing import List, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .analysis import AnalysisPipeline
from .canvas import BoundingRect, DrawSurface, PointerEvent
from .config import AppConfig
from .model_client import ModelClient, create_client


# Tried in order; wide-coverage fonts first so non-Latin replies render
PANEL_FONT_CANDIDATES = (
    "NotoSansCJK-Regular.ttc",
    "NotoSans-Regular.ttf",
    "Arial Unicode.ttf",
    "msyh.ttc",
    "DejaVuSans.ttf",
    "arial.ttf",
)
PANEL_FONT_SIZE = 16


@lru_cache(maxsize=1)
def load_panel_font() -> ImageFont.FreeTypeFont:
    """Load the first available TrueType font for the result panel."""
    for name in PANEL_FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, PANEL_FONT_SIZE)
        except OSError:
            continue
    print("[WARNING] No system font found; using Pillow's bundled font")
    return ImageFont.load_default(size=PANEL_FONT_SIZE)


class SketchChatApp:
    """
    Main application class.

    Mouse input draws on the surface; the send control submits the
    drawing for analysis and the reply is shown top-left (or opened in
    the browser when the model asks for a redirect).
    """

    WINDOW_NAME = "Sketch+Chat"

    # UI Colors (BGR)
    UI_BUTTON_COLOR = (255, 255, 255)
    UI_BUTTON_DISABLED_COLOR = (110, 110, 110)
    UI_TEXT_COLOR = (0, 0, 0)
    UI_PANEL_COLOR = (255, 255, 255)

    SEND_RADIUS = 32
    MARGIN = 24
    CLEAR_SIZE = (90, 40)
    PANEL_MAX_WIDTH = 448
    LINE_HEIGHT = 22

    # Seconds to let an outstanding request finish on exit
    SHUTDOWN_WAIT = 1.0

    def __init__(
        self,
        config: AppConfig,
        client: Optional[ModelClient],
        width: int = 1280,
        height: int = 720
    ):
        """
        Initialize the application.

        Args:
            config: Application config
            client: Model backend (None if unavailable)
            width: Initial window width
            height: Initial window height
        """
        self.config = config
        # The canvas fills the window, so window coordinates are client coordinates
        self.surface = DrawSurface(
            width, height,
            rect_provider=lambda: BoundingRect(0, 0, self.surface.width, self.surface.height)
        )
        self.pipeline = AnalysisPipeline(client, config)

        self._running = False
        self._needs_redraw = True
        self.surface.subscribe(self._mark_dirty)

    def _mark_dirty(self):
        self._needs_redraw = True

    # Control geometry (recomputed from the current surface size)
    def _send_center(self) -> Tuple[int, int]:
        return (
            self.surface.width - self.MARGIN - self.SEND_RADIUS,
            self.surface.height - self.MARGIN - self.SEND_RADIUS
        )

    def _clear_rect(self) -> Tuple[int, int, int, int]:
        w, h = self.CLEAR_SIZE
        return self.MARGIN, self.surface.height - self.MARGIN - h, w, h

    def _hit_send(self, x: int, y: int) -> bool:
        cx, cy = self._send_center()
        return (x - cx) ** 2 + (y - cy) ** 2 <= self.SEND_RADIUS ** 2

    def _hit_clear(self, x: int, y: int) -> bool:
        rx, ry, rw, rh = self._clear_rect()
        return rx <= x <= rx + rw and ry <= y <= ry + rh

    def _inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.surface.width and 0 <= y < self.surface.height

    # Commands
    def _on_submit(self):
        """Send the drawing for analysis unless one is outstanding."""
        if self.pipeline.state.is_analyzing:
            return
        self.pipeline.analyze(self.surface)
        self._needs_redraw = True

    def _on_clear(self):
        """Erase the drawing and the result text."""
        self.surface.clear()
        self.pipeline.clear_result()
        self._needs_redraw = True

    def _on_mouse(self, event: int, x: int, y: int, flags: int, param):
        """OpenCV mouse callback."""
        if event == cv2.EVENT_LBUTTONDOWN:
            if self._hit_send(x, y):
                self._on_submit()
            elif self._hit_clear(x, y):
                self._on_clear()
            else:
                self.surface.pointer_down(PointerEvent(x, y))
        elif event == cv2.EVENT_MOUSEMOVE:
            if not self._inside(x, y):
                self.surface.pointer_leave(PointerEvent(x, y))
            else:
                self.surface.pointer_move(PointerEvent(x, y))
        elif event == cv2.EVENT_LBUTTONUP:
            self.surface.pointer_up(PointerEvent(x, y))

    def _handle_keyboard(self, key: int) -> bool:
        """
        Handle keyboard input.

        Returns:
            False if should quit, True otherwise
        """
        if key == ord('q') or key == 27:  # Q or Escape
            return False
        elif key == ord('c'):
            self._on_clear()
        elif key in (ord('g'), 13, 10):  # G or Enter
            self._on_submit()
        return True

    def _sync_viewport(self):
        """Resize the surface when the window size changed."""
        try:
            _, _, w, h = cv2.getWindowImageRect(self.WINDOW_NAME)
        except cv2.error:
            return
        if w > 0 and h > 0 and (w, h) != (self.surface.width, self.surface.height):
            self.surface.resize(w, h)
            print(f"[INFO] Viewport resized to {w}x{h}; canvas cleared")

    # Rendering
    def _draw_controls(self, frame: np.ndarray) -> np.ndarray:
        busy = self.pipeline.state.is_analyzing

        # Send button: white disc with a paper-plane arrow
        cx, cy = self._send_center()
        color = self.UI_BUTTON_DISABLED_COLOR if busy else self.UI_BUTTON_COLOR
        cv2.circle(frame, (cx, cy), self.SEND_RADIUS, color, -1, cv2.LINE_AA)
        arrow = np.array([
            (cx - 11, cy - 10), (cx + 12, cy), (cx - 11, cy + 10), (cx - 6, cy)
        ], dtype=np.int32)
        cv2.polylines(frame, [arrow], True, self.UI_TEXT_COLOR, 2, cv2.LINE_AA)

        # Clear button
        rx, ry, rw, rh = self._clear_rect()
        cv2.rectangle(frame, (rx, ry), (rx + rw, ry + rh), self.UI_BUTTON_COLOR, -1)
        cv2.putText(
            frame, "Clear", (rx + 16, ry + 27),
            cv2.FONT_HERSHEY_SIMPLEX, 0.7, self.UI_TEXT_COLOR, 2, cv2.LINE_AA
        )
        return frame

    def _wrap_lines(self, text: str, max_width: int) -> List[str]:
        """
        Wrap text to a pixel width using the panel font.

        Args:
            text: Text to wrap (newlines start new paragraphs)
            max_width: Available width in pixels

        Returns:
            Lines that each fit within max_width
        """
        font = load_panel_font()
        lines = []
        for paragraph in text.splitlines() or [""]:
            line = ""
            for word in paragraph.split(" "):
                candidate = f"{line} {word}" if line else word
                if font.getlength(candidate) <= max_width:
                    line = candidate
                    continue
                if line:
                    lines.append(line)
                # Break words (or unspaced scripts) wider than the panel
                line = ""
                for char in word:
                    if line and font.getlength(line + char) > max_width:
                        lines.append(line)
                        line = ""
                    line += char
            lines.append(line)
        return lines

    def _draw_result(self, frame: np.ndarray) -> np.ndarray:
        text = self.pipeline.state.result_text
        if not text:
            return frame

        panel_w = min(self.PANEL_MAX_WIDTH, frame.shape[1] - 2 * self.MARGIN)
        lines = self._wrap_lines(text, panel_w - 32)

        max_lines = max(1, (frame.shape[0] - 3 * self.MARGIN) // self.LINE_HEIGHT - 4)
        if len(lines) > max_lines:
            lines = lines[:max_lines - 1] + ["..."]

        x, y = self.MARGIN, self.MARGIN
        panel_h = len(lines) * self.LINE_HEIGHT + 24
        cv2.rectangle(frame, (x, y), (x + panel_w, y + panel_h), self.UI_PANEL_COLOR, -1)

        # Hershey fonts are ASCII-only; Pillow draws the reply verbatim
        image = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(image)
        font = load_panel_font()
        for i, line in enumerate(lines):
            draw.text(
                (x + 16, y + 12 + i * self.LINE_HEIGHT), line,
                font=font, fill=self.UI_TEXT_COLOR[::-1]
            )
        return cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)

    def render(self) -> np.ndarray:
        """Compose the raster and the controls into a display frame."""
        frame = self.surface.raster.copy()
        frame = self._draw_result(frame)
        return self._draw_controls(frame)

    def run(self):
        """Run the main application loop."""
        print("\n" + "=" * 60)
        print("  Sketch+Chat - Draw a message, get a reply")
        print("=" * 60)
        print("\nMouse:")
        print("  Drag           -> Draw")
        print("  Round button   -> Send drawing")
        print("  Clear button   -> Clear canvas")
        print("\nKeyboard:")
        print("  [G/Enter] Send | [C] Clear | [Q] Quit")
        print("\n" + "=" * 60)

        self._running = True
        cv2.namedWindow(self.WINDOW_NAME, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self.WINDOW_NAME, self.surface.width, self.surface.height)
        cv2.setMouseCallback(self.WINDOW_NAME, self._on_mouse)

        was_busy = False
        try:
            while self._running:
                self._sync_viewport()

                if self.pipeline.poll() is not None:
                    self._needs_redraw = True

                busy = self.pipeline.state.is_analyzing
                if busy != was_busy:
                    self._needs_redraw = True
                    was_busy = busy

                if self._needs_redraw:
                    cv2.imshow(self.WINDOW_NAME, self.render())
                    self._needs_redraw = False

                key = cv2.waitKey(15) & 0xFF
                if not self._handle_keyboard(key):
                    break

                # Window closed with the title-bar button
                if cv2.getWindowProperty(self.WINDOW_NAME, cv2.WND_PROP_VISIBLE) < 1:
                    break
        finally:
            self._running = False
            self.pipeline.join(timeout=self.SHUTDOWN_WAIT)
            cv2.destroyAllWindows()
            print("\n[INFO] Application closed")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Sketch+Chat - Draw a message, get a reply from Gemini")
    parser.add_argument('--mock', action='store_true', help='Use mock model backend (no API needed)')
    parser.add_argument('--model', default=None, help='Model identifier (default: gemini-2.5-pro)')
    parser.add_argument('--timeout', type=float, default=None, help='Seconds before an analysis is abandoned')
    parser.add_argument('--width', type=int, default=1280, help='Initial window width')
    parser.add_argument('--height', type=int, default=720, help='Initial window height')

    args = parser.parse_args()

    config = AppConfig.from_env(model_id=args.model, request_timeout=args.timeout)
    client = create_client(config, use_mock=args.mock)

    app = SketchChatApp(config, client, width=args.width, height=args.height)
    app.run()


if __name__ == "__main__":
    main()
