"""Speaker picker modal requiring an exact match from the discovered list."""

from __future__ import annotations

from collections.abc import Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static


def render_speaker_list(speakers: Sequence[str], current: str | None) -> Text:
    """Render one speaker per line, marking the current default."""
    text = Text()
    for index, speaker in enumerate(speakers):
        if index:
            text.append("\n")
        if speaker == current:
            text.append(f"* {speaker}", style="bold")
        else:
            text.append(f"  {speaker}")
    return text


class SpeakerPickerModal(ModalScreen[str | None]):
    """Prompt for a speaker name; unknown names are rejected in place."""

    BINDINGS = [("escape", "cancel", "Cancel")]

    def __init__(self, speakers: Sequence[str], *, current: str | None = None) -> None:
        super().__init__()
        self._speakers = tuple(speakers)
        self._current = current
        self._input: Input | None = None
        self._error: Label | None = None
        self.error_message = ""

    def compose(self) -> ComposeResult:
        self._input = Input(
            value=self._current or "",
            placeholder="Speaker name or _all_",
            id="speaker-input",
        )
        self._error = Label("", id="speaker-error")
        yield Vertical(
            Label("Select default speaker"),
            Static(
                render_speaker_list(self._speakers, self._current), id="speaker-list"
            ),
            self._input,
            self._error,
            Horizontal(
                Button("OK", id="ok"),
                Button("Cancel", id="cancel"),
            ),
            id="modal-body",
        )

    def on_mount(self) -> None:
        if self._input is not None:
            self._input.focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok":
            self.action_submit()
        elif event.button.id == "cancel":
            self.action_cancel()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        del event
        self.action_submit()

    def action_submit(self) -> None:
        value = self._input.value.strip() if self._input is not None else ""
        if value in self._speakers:
            self.dismiss(value)
            return
        self.error_message = f"Unknown speaker {value!r}; type a listed name exactly."
        if self._error is not None:
            self._error.update(Text(self.error_message))
        if self._input is not None:
            self._input.focus()

    def action_cancel(self) -> None:
        self.dismiss(None)


class SpeakerPickerApp(App[str | None]):
    """Standalone app hosting `SpeakerPickerModal` for the CLI."""

    TITLE = "tz-sonos"

    def __init__(self, speakers: Sequence[str], *, current: str | None = None) -> None:
        super().__init__()
        self._speakers = tuple(speakers)
        self._current = current

    def on_mount(self) -> None:
        self.push_screen(
            SpeakerPickerModal(self._speakers, current=self._current),
            callback=self._on_result,
        )

    def _on_result(self, result: str | None) -> None:
        self.exit(result)


async def choose_speaker_with_textual(
    speakers: Sequence[str], current: str | None
) -> str | None:
    """Speaker chooser backed by the Textual picker."""
    return await SpeakerPickerApp(speakers, current=current).run_async()
