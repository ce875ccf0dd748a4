"""Cursor and section bookkeeping for the quick settings menu.

The menu is an ordered list of entries. A :class:`Section` is a collapsible
header with child items; a :class:`Toggle` is a single on/off row. The cursor
is one integer indexing the *selectable* rows of the flattened view, so every
absolute position is derived from the visibility flags and item counts at the
moment it is needed. Data updates (:meth:`MenuState.set_items` and friends)
may change those counts at any time; the cursor is re-anchored on the row the
user was looking at before the change.

Nothing in this module performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence, Union


AUDIO = "audio"
BLUETOOTH = "bluetooth"
WIFI = "wifi"
AIRPLANE = "airplane"

SET_AUDIO_OUTPUT = "set_audio_output"
CONNECT_BLUETOOTH = "connect_bluetooth"
CONNECT_WIFI = "connect_wifi"
SET_AIRPLANE_MODE = "set_airplane_mode"


@dataclass
class MenuItem:
    name: str
    active: bool = False
    value: str | None = None
    detail: str = ""

    def __post_init__(self) -> None:
        if self.value is None:
            self.value = self.name


@dataclass
class Section:
    key: str
    label: str
    action: str
    items: list[MenuItem] = field(default_factory=list)
    visible: bool = False
    loading: bool = False


@dataclass
class Toggle:
    key: str
    label: str
    action: str
    enabled: bool = False


Entry = Union[Section, Toggle]


@dataclass(frozen=True)
class ActionRequest:
    kind: str
    target: object
    label: str = ""


@dataclass(frozen=True)
class Row:
    kind: str  # header, toggle, item, loading or empty
    entry: Entry
    item: MenuItem | None = None
    selected: bool = False


def default_menu() -> "MenuState":
    return MenuState(
        [
            Section(AUDIO, "Audio Output", SET_AUDIO_OUTPUT),
            Section(BLUETOOTH, "Bluetooth", CONNECT_BLUETOOTH),
            Section(WIFI, "WiFi Network", CONNECT_WIFI, loading=True),
            Toggle(AIRPLANE, "Airplane Mode", SET_AIRPLANE_MODE),
        ]
    )


class MenuState:
    def __init__(self, entries: Sequence[Entry]) -> None:
        if not entries:
            raise ValueError("menu needs at least one entry")
        keys = [entry.key for entry in entries]
        if len(set(keys)) != len(keys):
            raise ValueError(f"duplicate menu keys: {keys}")
        self.entries: list[Entry] = list(entries)
        self.cursor = 0

    # -- lookups ---------------------------------------------------------

    def entry(self, key: str) -> Entry:
        for entry in self.entries:
            if entry.key == key:
                return entry
        raise KeyError(key)

    def section(self, key: str) -> Section:
        entry = self.entry(key)
        if not isinstance(entry, Section):
            raise KeyError(f"{key} is not a section")
        return entry

    def toggle(self, key: str) -> Toggle:
        entry = self.entry(key)
        if not isinstance(entry, Toggle):
            raise KeyError(f"{key} is not a toggle")
        return entry

    @property
    def sections(self) -> list[Section]:
        return [entry for entry in self.entries if isinstance(entry, Section)]

    def visible_section(self) -> Section | None:
        for section in self.sections:
            if section.visible:
                return section
        return None

    def _selectable(self) -> list[tuple[Entry, MenuItem | None]]:
        positions: list[tuple[Entry, MenuItem | None]] = []
        for entry in self.entries:
            positions.append((entry, None))
            if isinstance(entry, Section) and entry.visible:
                positions.extend((entry, item) for item in entry.items)
        return positions

    def _header_index(self, entry: Entry) -> int:
        for index, (candidate, item) in enumerate(self._selectable()):
            if candidate is entry and item is None:
                return index
        raise KeyError(entry.key)

    def total(self) -> int:
        return len(self._selectable())

    def current(self) -> tuple[Entry, MenuItem | None]:
        return self._selectable()[self.cursor]

    def rows(self) -> list[Row]:
        rows: list[Row] = []
        index = 0
        for entry in self.entries:
            kind = "toggle" if isinstance(entry, Toggle) else "header"
            rows.append(Row(kind, entry, selected=index == self.cursor))
            index += 1
            if not isinstance(entry, Section) or not entry.visible:
                continue
            if not entry.items:
                rows.append(Row("loading" if entry.loading else "empty", entry))
                continue
            for item in entry.items:
                rows.append(Row("item", entry, item, selected=index == self.cursor))
                index += 1
        return rows

    # -- navigation ------------------------------------------------------

    def _clamp(self) -> None:
        self.cursor = max(0, min(self.cursor, self.total() - 1))

    def move_up(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1

    def move_down(self) -> None:
        if self.cursor < self.total() - 1:
            self.cursor += 1

    def _show_only(self, target: Section | None) -> None:
        for section in self.sections:
            section.visible = section is target

    def _open(self, section: Section) -> None:
        self._show_only(section)
        self.cursor = self._header_index(section)
        if section.items:
            self.cursor += 1

    def expand(self) -> bool:
        entry, item = self.current()
        if item is not None or not isinstance(entry, Section):
            return False
        self._open(entry)
        return True

    def collapse(self) -> bool:
        entry, _ = self.current()
        if not isinstance(entry, Section) or not entry.visible:
            return False
        entry.visible = False
        self.cursor = self._header_index(entry)
        return True

    def escape(self) -> bool:
        """Collapse the open section; return True when there is nothing left to close."""
        section = self.visible_section()
        if section is None:
            return True
        section.visible = False
        self.cursor = self._header_index(section)
        return False

    def activate(self) -> ActionRequest | None:
        entry, item = self.current()
        if isinstance(entry, Toggle):
            entry.enabled = not entry.enabled
            self._show_only(None)
            self.cursor = self._header_index(entry)
            return ActionRequest(entry.action, entry.enabled, entry.label)
        if item is not None:
            return ActionRequest(entry.action, item.value, item.name)
        if entry.visible:
            entry.visible = False
            self.cursor = self._header_index(entry)
        else:
            self._open(entry)
        return None

    # -- asynchronous updates ---------------------------------------------

    def _anchor(self) -> tuple[Entry, str | None, int]:
        entry, item = self.current()
        if item is None or not isinstance(entry, Section):
            return entry, None, 0
        return entry, item.value, entry.items.index(item)

    def _restore(self, anchor: tuple[Entry, str | None, int]) -> None:
        entry, value, offset = anchor
        self.cursor = self._header_index(entry)
        if value is not None and isinstance(entry, Section) and entry.visible and entry.items:
            values = [item.value for item in entry.items]
            position = values.index(value) if value in values else min(offset, len(values) - 1)
            self.cursor += 1 + position
        self._clamp()

    def set_items(self, key: str, items: Iterable[MenuItem]) -> None:
        section = self.section(key)
        anchor = self._anchor()
        section.items = list(items)
        section.loading = False
        self._restore(anchor)

    def set_loading(self, key: str, loading: bool = True) -> None:
        self.section(key).loading = loading

    def set_toggle(self, key: str, enabled: bool) -> None:
        self.toggle(key).enabled = enabled
