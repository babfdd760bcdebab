from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TextInput:
    """Single-line editable text with a cursor measured in characters."""

    value: str = ""
    cursor: int = 0

    @classmethod
    def prefilled(cls, value: str) -> "TextInput":
        return cls(value=value, cursor=len(value))

    def insert(self, text: str) -> None:
        if not text:
            return
        self.value = self.value[: self.cursor] + text + self.value[self.cursor :]
        self.cursor += len(text)

    def backspace(self) -> None:
        if self.cursor == 0:
            return
        self.value = self.value[: self.cursor - 1] + self.value[self.cursor :]
        self.cursor -= 1

    def delete(self) -> None:
        if self.cursor >= len(self.value):
            return
        self.value = self.value[: self.cursor] + self.value[self.cursor + 1 :]

    def left(self) -> None:
        self.cursor = max(0, self.cursor - 1)

    def right(self) -> None:
        self.cursor = min(len(self.value), self.cursor + 1)

    def home(self) -> None:
        self.cursor = 0

    def end(self) -> None:
        self.cursor = len(self.value)
