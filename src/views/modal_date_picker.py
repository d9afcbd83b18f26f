from datetime import date, timedelta
from typing import Optional

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label

from utils.pure import format_day


class DatePickerModal(ModalScreen[Optional[date]]):
    """
    Pick a calendar day. Returns the date, or None when cancelled.
    Days before min_date cannot be chosen.
    """

    picked = reactive(date.today)

    def __init__(
        self,
        initial: Optional[date] = None,
        min_date: Optional[date] = None,
        title: str = "Select a date",
    ) -> None:
        super().__init__()
        self.min_date = min_date
        self.picker_title = title
        start = initial or date.today()
        if min_date and start < min_date:
            start = min_date
        self.set_reactive(DatePickerModal.picked, start)

    def compose(self) -> ComposeResult:
        with Vertical(id="div-date-picker"):
            yield Label(self.picker_title, id="label-picker-title")
            yield Label(format_day(self.picked), id="label-picked")
            with Horizontal(classes="picker-steps"):
                yield Button("-7", id="btn-prev-week")
                yield Button("-1", id="btn-prev-day")
                yield Button("+1", id="btn-next-day")
                yield Button("+7", id="btn-next-week")
            yield Input(
                self.picked.isoformat(),
                placeholder="YYYY-MM-DD",
                id="input-date",
                max_length=10,
            )
            with Horizontal(classes="picker-buttons"):
                yield Button("Cancel", id="btn-cancel")
                yield Button("Confirm", id="btn-confirm", variant="primary")

    def on_mount(self) -> None:
        self._refresh_controls()
        self.query_one("#btn-next-day").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def validate_picked(self, value: date) -> date:
        if self.min_date and value < self.min_date:
            return self.min_date
        return value

    def watch_picked(self, value: date) -> None:
        if not self.is_mounted:
            return
        self.query_one("#label-picked", Label).update(format_day(value))
        date_input = self.query_one("#input-date", Input)
        if date_input.value != value.isoformat():
            date_input.value = value.isoformat()
        self._refresh_controls()

    def _refresh_controls(self) -> None:
        at_min = self.min_date is not None and self.picked <= self.min_date
        self.query_one("#btn-prev-day", Button).disabled = at_min
        self.query_one("#btn-prev-week", Button).disabled = at_min

    @on(Button.Pressed, "#btn-prev-week")
    def handle_prev_week(self) -> None:
        self.picked -= timedelta(days=7)

    @on(Button.Pressed, "#btn-prev-day")
    def handle_prev_day(self) -> None:
        self.picked -= timedelta(days=1)

    @on(Button.Pressed, "#btn-next-day")
    def handle_next_day(self) -> None:
        self.picked += timedelta(days=1)

    @on(Button.Pressed, "#btn-next-week")
    def handle_next_week(self) -> None:
        self.picked += timedelta(days=7)

    @on(Input.Changed, "#input-date")
    def handle_typed_date(self, event: Input.Changed) -> None:
        try:
            typed = date.fromisoformat(event.value)
        except ValueError:
            return
        if self.min_date and typed < self.min_date:
            event.input.add_class("-invalid")
            return
        event.input.remove_class("-invalid")
        self.picked = typed

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#btn-confirm")
    def handle_confirm(self) -> None:
        self.dismiss(self.picked)
