"""
Analysis Module - Drawing to Model Reply
========================================
Turns a raster snapshot into a model request and turns the model's
free-form reply into either text to display or a URL to open.

A reply is a redirect only when it is a JSON object of the form
{"type": "redirect", "value": "<url>"}. Anything else, including valid
JSON of another shape, is shown verbatim.
"""

import json
import queue
import threading
import time
import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Union

from .canvas import DrawSurface, Snapshot
from .config import AppConfig, DEFAULT_GENERATION_SETTINGS, DEFAULT_SAFETY_SETTINGS
from .model_client import (
    ModelClient,
    ModelRequest,
    PreconditionError,
    SketchChatError,
    TransportError,
)

__all__ = [
    "AnalysisError",
    "AnalysisPipeline",
    "AnalysisRequestState",
    "DisplayText",
    "PreconditionError",
    "Redirect",
    "SketchChatError",
    "TransportError",
    "classify_reply",
    "is_redirect_directive",
    "try_parse_json",
]


INSTRUCTION_PROMPT = """Transcribe the handwritten text or interpret the drawing in this image. Respond conversationally to the content as if it were a user message in a chat. For example, if the text is "hi," respond with something like "hi..." or a friendly reply. If it's a question, answer it naturally. If it's a command or request, fulfill it appropriately.

Decide independently if the response requires providing a URL (e.g., for searches like "search: cats", playlists like "playlist: song name", videos like "video: topic", or any other content that logically needs a web link). If you decide a URL is needed, respond in JSON format: {"type": "redirect", "value": "the_url_here"}. Otherwise, return just the conversational text response, no JSON.

If the content is a drawing, respond creatively based on what it resembles. Write clearly for best results."""

REDIRECT_PLACEHOLDER = "Redirecting..."
PRECONDITION_MESSAGE = "Canvas or API key missing."
FAILURE_PREFIX = "Analysis failed: "
FAILURE_FALLBACK = "Check the log for details."


@dataclass(frozen=True)
class DisplayText:
    """Show the reply text as-is."""
    text: str


@dataclass(frozen=True)
class Redirect:
    """Open the URL in a new browser tab."""
    url: Any


@dataclass(frozen=True)
class AnalysisError:
    """The analysis could not produce a reply."""
    message: str


AnalysisOutcome = Union[DisplayText, Redirect, AnalysisError]


@dataclass
class AnalysisRequestState:
    """UI-facing state of the pipeline."""
    is_analyzing: bool = False
    result_text: str = ""


def try_parse_json(text: str) -> Tuple[bool, Any]:
    """
    Attempt to parse text as JSON.

    Returns:
        (True, value) on success, (False, None) otherwise
    """
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def is_redirect_directive(value: Any) -> bool:
    """Check for {"type": "redirect", "value": <truthy url>}."""
    if not isinstance(value, dict):
        return False
    return value.get("type") == "redirect" and bool(value.get("value"))


def classify_reply(reply: str) -> Union[DisplayText, Redirect]:
    """
    Disambiguate a model reply.

    Args:
        reply: Raw reply text from the model

    Returns:
        Redirect if the trimmed reply is a redirect directive,
        DisplayText of the trimmed reply otherwise
    """
    trimmed = reply.strip()
    parsed, value = try_parse_json(trimmed)
    if parsed and is_redirect_directive(value):
        return Redirect(value["value"])
    return DisplayText(trimmed)


def failure_message(error: BaseException) -> str:
    """Human-readable text for a failed analysis."""
    return FAILURE_PREFIX + (str(error) or FAILURE_FALLBACK)


class AnalysisPipeline:
    """
    Sends drawings to the model and applies the classified replies.

    At most one request is in flight at a time. Requests run on a
    background thread; completed outcomes are queued and applied by
    poll() on the thread that drives the UI, so state changes happen
    in the order the stages complete.
    """

    def __init__(
        self,
        client: Optional[ModelClient],
        config: AppConfig,
        open_url: Callable[[str], Any] = webbrowser.open_new_tab
    ):
        """
        Initialize the pipeline.

        Args:
            client: Model backend (None if no credential was found)
            config: Application config
            open_url: Opens a URL in a new browsing context
        """
        self.client = client
        self.config = config
        self.open_url = open_url
        self.state = AnalysisRequestState()

        self._results: "queue.Queue[Tuple[int, AnalysisOutcome]]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._request_id = 0
        self._started_at = 0.0
        self._last_outcome: Optional[AnalysisOutcome] = None

    @property
    def last_outcome(self) -> Optional[AnalysisOutcome]:
        return self._last_outcome

    def build_request(self, snapshot: Snapshot) -> ModelRequest:
        """Build the model request for a snapshot."""
        return ModelRequest(
            prompt=INSTRUCTION_PROMPT,
            image_data=snapshot.to_bytes(),
            mime_type=snapshot.mime_type,
            model_id=self.config.model_id,
            generation=DEFAULT_GENERATION_SETTINGS,
            safety=DEFAULT_SAFETY_SETTINGS,
        )

    def _check_preconditions(self, surface: Optional[DrawSurface]):
        if surface is None or self.client is None:
            raise PreconditionError(PRECONDITION_MESSAGE)
        if not self.client.is_configured():
            raise PreconditionError(PRECONDITION_MESSAGE)

    def analyze(
        self,
        surface: Optional[DrawSurface],
        async_mode: bool = True
    ) -> Optional[AnalysisOutcome]:
        """
        Submit the surface's current drawing.

        Args:
            surface: Surface to snapshot
            async_mode: If True, run the request in a background thread

        Returns:
            None if a request is already in flight or the request was
            started asynchronously; the applied outcome otherwise
        """
        if self.state.is_analyzing:
            return None

        try:
            self._check_preconditions(surface)
        except PreconditionError as e:
            outcome = AnalysisError(str(e))
            self.state.result_text = outcome.message
            self._last_outcome = outcome
            print(f"[WARNING] {outcome.message}")
            return outcome

        self.state.is_analyzing = True
        self.state.result_text = ""
        self._request_id += 1
        self._started_at = time.monotonic()

        try:
            request = self.build_request(surface.snapshot())
        except Exception as e:
            return self._apply(AnalysisError(failure_message(e)))

        print(f"[INFO] Analyzing drawing ({surface.width}x{surface.height})")

        if not async_mode:
            return self._apply(self._run_request(request))

        self._worker = threading.Thread(
            target=self._run_async,
            args=(self._request_id, request),
            daemon=True
        )
        self._worker.start()
        return None

    def _run_request(self, request: ModelRequest) -> AnalysisOutcome:
        """Send the request and classify the reply. Never raises."""
        try:
            reply = self.client.generate(request)
        except SketchChatError as e:
            print(f"[ERROR] Analysis failed: {e}")
            return AnalysisError(failure_message(e))
        except Exception as e:
            print(f"[ERROR] Analysis failed unexpectedly: {e!r}")
            return AnalysisError(failure_message(e))
        return classify_reply(reply)

    def _run_async(self, request_id: int, request: ModelRequest):
        self._results.put((request_id, self._run_request(request)))

    def _apply(self, outcome: AnalysisOutcome) -> AnalysisOutcome:
        """Apply an outcome to the UI state. Always clears the busy flag."""
        try:
            if isinstance(outcome, Redirect):
                self.state.result_text = REDIRECT_PLACEHOLDER
                print(f"[INFO] Opening {outcome.url}")
                try:
                    self.open_url(str(outcome.url))
                except webbrowser.Error as e:
                    print(f"[WARNING] Could not open browser: {e}")
            elif isinstance(outcome, DisplayText):
                self.state.result_text = outcome.text
            else:
                self.state.result_text = outcome.message
            self._last_outcome = outcome
        finally:
            self.state.is_analyzing = False
        return outcome

    def poll(self) -> Optional[AnalysisOutcome]:
        """
        Apply a completed outcome, if any. Call from the UI loop.

        Returns:
            The applied outcome, or None if nothing completed
        """
        while True:
            try:
                request_id, outcome = self._results.get_nowait()
            except queue.Empty:
                break
            # Replies to abandoned (timed out) requests are dropped
            if request_id == self._request_id and self.state.is_analyzing:
                return self._apply(outcome)

        timeout = self.config.request_timeout
        if self.state.is_analyzing and timeout is not None:
            if time.monotonic() - self._started_at > timeout:
                print(f"[ERROR] Analysis timed out after {timeout:g}s")
                self._request_id += 1
                return self._apply(
                    AnalysisError(failure_message(TimeoutError(f"request timed out after {timeout:g}s")))
                )
        return None

    def join(self, timeout: Optional[float] = None):
        """Wait for the background request to finish."""
        if self._worker is not None:
            self._worker.join(timeout)

    def clear_result(self):
        """Reset the displayed result text."""
        self.state.result_text = ""
