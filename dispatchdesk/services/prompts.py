from typing import Optional, Protocol


class ConfirmationPrompt(Protocol):
    """Injected user-interaction capability. Returning None / False means the user cancelled."""

    def confirm(self, title: str, message: str) -> bool: ...

    def ask_text(self, title: str, label: str) -> Optional[str]: ...


class DocumentRenderer(Protocol):
    """Accepts a fully resolved invoice document and produces printable output."""

    def render(self, invoice) -> bytes: ...


class StaticPrompt:
    """
    Non-interactive prompt answering from values collected up front,
    e.g. an HTTP request body. `text=None` behaves like a cancelled dialog.
    """

    def __init__(self, text: Optional[str] = None, confirmed: bool = True):
        self.text = text
        self.confirmed = confirmed

    def confirm(self, title: str, message: str) -> bool:
        return bool(self.confirmed)

    def ask_text(self, title: str, label: str) -> Optional[str]:
        return self.text
