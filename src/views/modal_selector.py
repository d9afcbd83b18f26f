from typing import Callable, List, Optional, Sequence, TypeVar

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, OptionList
from textual.widgets.option_list import Option

from utils.pure import filter_by_name

T = TypeVar("T")


class SelectorModal(ModalScreen[Optional[T]]):
    """
    Searchable list of records (anything with a .name). Returns the picked
    record, None if closed.
    """

    def __init__(
        self,
        title: str,
        records: Sequence[T],
        describe: Callable[[T], str] = lambda r: r.name,
        search_placeholder: str = "Search...",
    ) -> None:
        super().__init__()
        self.selector_title = title
        self.records = list(records)
        self.describe = describe
        self.search_placeholder = search_placeholder
        self._shown: List[T] = []

    def compose(self) -> ComposeResult:
        with Vertical(id="div-selector"):
            yield Label(self.selector_title, id="label-selector-title")
            yield Input(placeholder=self.search_placeholder, id="input-selector-search")
            yield OptionList(id="optlist-selector")
            yield Label("No results found.", id="label-selector-empty", classes="hidden")
            yield Button("Close", id="btn-close")

    def on_mount(self) -> None:
        self._fill("")
        self.query_one("#input-selector-search").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Input.Changed, "#input-selector-search")
    def handle_search(self, event: Input.Changed) -> None:
        self._fill(event.value)

    @on(Input.Submitted, "#input-selector-search")
    def handle_search_submit(self) -> None:
        if len(self._shown) == 1:
            self.dismiss(self._shown[0])
        else:
            self.query_one(OptionList).focus()

    def _fill(self, query: str) -> None:
        self._shown = filter_by_name(self.records, query)
        opt_list = self.query_one(OptionList)
        opt_list.clear_options()
        opt_list.add_options(
            [Option(self.describe(r), id=str(i)) for i, r in enumerate(self._shown)]
        )
        self.query_one("#label-selector-empty").set_class(bool(self._shown), "hidden")

    @on(OptionList.OptionSelected, "#optlist-selector")
    def handle_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(self._shown[int(event.option.id)])

    @on(Button.Pressed, "#btn-close")
    def handle_close(self) -> None:
        self.dismiss(None)
