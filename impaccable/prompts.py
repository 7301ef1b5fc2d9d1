from __future__ import annotations
from typing import Any, List, Optional, Protocol, Sequence

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, OptionList, SelectionList, Static, TextArea

class Prompter(Protocol):
    def confirm(self, title: str, body: str) -> bool: ...
    def select_one(self, title: str, options: Sequence[str]) -> Optional[str]: ...
    def select_many(self, title: str, options: Sequence[str]) -> List[str]: ...
    def text_input(self, title: str, placeholder: str = "") -> str: ...
    def edit(self, title: str, text: str) -> Optional[str]: ...

class ConfirmModal(ModalScreen[bool]):
    def __init__(self, title: str, body: str):
        super().__init__()
        self._title = title
        self._body = body

    def compose(self) -> ComposeResult:
        yield Container(
            Static(f"[b]{self._title}[/b]"),
            Static(self._body),
            Horizontal(
                Button("Cancel", id="no", variant="error"),
                Button("OK", id="yes", variant="success"),
            ),
            id="modal",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

class TextInputModal(ModalScreen[str]):
    def __init__(self, title: str, placeholder: str):
        super().__init__()
        self._title = title
        self._placeholder = placeholder

    def compose(self) -> ComposeResult:
        yield Container(
            Static(f"[b]{self._title}[/b]"),
            Input(placeholder=self._placeholder, id="ti"),
            Horizontal(
                Button("OK", id="ok", variant="success"),
                Button("Cancel", id="cancel", variant="error"),
            ),
            id="modal",
        )

    def on_mount(self) -> None:
        self.query_one("#ti", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value.strip())

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss("")
        else:
            self.dismiss(self.query_one("#ti", Input).value.strip())

class SelectModal(ModalScreen[Optional[str]]):
    def __init__(self, title: str, options: Sequence[str]):
        super().__init__()
        self._title = title
        self._options = list(options)

    def compose(self) -> ComposeResult:
        yield Container(
            Static(f"[b]{self._title}[/b]"),
            OptionList(*self._options, id="options"),
            Button("Cancel", id="cancel", variant="error"),
            id="modal",
        )

    def on_mount(self) -> None:
        self.query_one("#options", OptionList).focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(self._options[event.option_index])

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(None)

class MultiSelectModal(ModalScreen[List[str]]):
    def __init__(self, title: str, options: Sequence[str]):
        super().__init__()
        self._title = title
        self._options = list(options)

    def compose(self) -> ComposeResult:
        yield Container(
            Static(f"[b]{self._title}[/b]"),
            Static("[dim]Space toggles · OK confirms[/dim]"),
            SelectionList[int](*[(o, i, False) for i, o in enumerate(self._options)], id="selection"),
            Horizontal(
                Button("OK", id="ok", variant="success"),
                Button("Cancel", id="cancel", variant="error"),
            ),
            id="modal",
        )

    def on_mount(self) -> None:
        self.query_one("#selection", SelectionList).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss([])
            return
        picked = sorted(self.query_one("#selection", SelectionList).selected)
        self.dismiss([self._options[i] for i in picked])

class EditorModal(ModalScreen[Optional[str]]):
    BINDINGS = [
        ("ctrl+s", "save", "Save"),
        ("escape", "cancel", "Cancel"),
    ]

    def __init__(self, title: str, text: str):
        super().__init__()
        self._title = title
        self._text = text

    def compose(self) -> ComposeResult:
        yield Container(
            Static(f"[b]{self._title}[/b]"),
            TextArea(self._text, id="editor"),
            Horizontal(
                Button("Save", id="save", variant="success"),
                Button("Cancel", id="cancel", variant="error"),
            ),
            id="modal",
        )

    def on_mount(self) -> None:
        self.query_one("#editor", TextArea).focus()

    def action_save(self) -> None:
        self.dismiss(self.query_one("#editor", TextArea).text)

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.action_cancel()
        else:
            self.action_save()

class PromptApp(App):
    """
    Shows a single modal and exits with whatever it was dismissed with.
    """

    CSS = """
    Screen { background: $background; }
    #modal { width: 92%; max-width: 170; height: auto; max-height: 95%; padding: 1 2; border: round $primary; background: $panel; }
    #modal Horizontal { height: auto; }
    #modal Button { margin: 1 1 0 0; }
    #options, #selection { height: auto; max-height: 20; }
    EditorModal #modal { height: 90%; }
    #editor { height: 1fr; min-height: 3; }
    """

    def __init__(self, prompt: ModalScreen):
        super().__init__()
        self._prompt = prompt

    def on_mount(self) -> None:
        self.push_screen(self._prompt, callback=self._done)

    def _done(self, result: Any) -> None:
        self.exit(result)

class TextualPrompter:
    def _ask(self, prompt: ModalScreen) -> Any:
        return PromptApp(prompt).run()

    def confirm(self, title: str, body: str) -> bool:
        return bool(self._ask(ConfirmModal(title, body)))

    def select_one(self, title: str, options: Sequence[str]) -> Optional[str]:
        if not options:
            return None
        return self._ask(SelectModal(title, options))

    def select_many(self, title: str, options: Sequence[str]) -> List[str]:
        if not options:
            return []
        return list(self._ask(MultiSelectModal(title, options)) or [])

    def text_input(self, title: str, placeholder: str = "") -> str:
        return self._ask(TextInputModal(title, placeholder)) or ""

    def edit(self, title: str, text: str) -> Optional[str]:
        return self._ask(EditorModal(title, text))
