from .audio_capture_stream import AudioCaptureStream
from .automation_surface import AutomationSurface, ElementState
from .web_bot_adapter import WebAutomationSurface

__all__ = ["AudioCaptureStream", "AutomationSurface", "ElementState", "WebAutomationSurface"]
