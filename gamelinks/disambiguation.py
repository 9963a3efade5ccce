"""
Interactive choice among search results when no exact match was found.

The operator sees the ranked candidates followed by fixed actions:

- "Search by logo": run a reverse image search and show the list again
  (offered once per game)
- "No link": keep the game on the page without a link
- "Type link": enter a link by hand
- "Skip item": leave the game off the page

Prompts from concurrent lookups are serialized through one terminal lock.
"""

import threading
from typing import Callable, List, Optional, TextIO

from .logger import get_logger
from .models import Entity, Resolution, Slot
from .scrapers.lens import LensClient, LensError

SEARCH_BY_LOGO = "Search by logo"
NO_LINK = "No link"
TYPE_LINK = "Type link"
SKIP_ITEM = "Skip item"


class SelectionError(Exception):
    """The operator did not pick a valid option."""


class TerminalPrompter:
    """Numbered menu on the terminal, one prompt at a time."""

    def __init__(
        self,
        lock: Optional[threading.Lock] = None,
        input_func: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
    ):
        self.lock = lock or threading.Lock()
        self.input_func = input_func
        self.output = output

    def pick(self, title: str, options: List[str]) -> int:
        """Show the options and return the index of the chosen one."""
        with self.lock:
            print(title, file=self.output)
            for i, option in enumerate(options, 1):
                print(f"  {i:>2}) {option}", file=self.output)
            try:
                raw = self.input_func("> ")
            except EOFError as e:
                raise SelectionError(f"you didn't select anything for {title!r}") from e

        try:
            index = int(raw.strip()) - 1
        except ValueError as e:
            raise SelectionError(f"not a number: {raw!r}") from e
        if not 0 <= index < len(options):
            raise SelectionError(f"choice {raw.strip()} is out of range 1-{len(options)}")
        return index

    def ask(self, question: str) -> str:
        with self.lock:
            print(question, file=self.output)
            try:
                return self.input_func("")
            except EOFError:
                return ""


class Disambiguator:
    def __init__(self, lens: LensClient, prompter, log=None):
        self.lens = lens
        self.prompter = prompter
        self.log = log or get_logger()

    @staticmethod
    def options(slot: Slot, logo_searched: bool) -> List[str]:
        options = list(slot.display_lines)
        if not logo_searched:
            options.append(SEARCH_BY_LOGO)
        options.extend((NO_LINK, TYPE_LINK, SKIP_ITEM))
        return options

    def _search_by_logo(self, entity: Entity, slot: Slot) -> None:
        try:
            self.lens.search_by_logo(entity, slot)
        except LensError as e:
            self.log.warning(str(e))

    def resolve(self, entity: Entity, slot: Slot) -> Resolution:
        """Loop on the menu until the operator reaches a final decision.

        Raises SelectionError when the operator's answer is not a valid option.
        """
        logo_searched = False
        if not slot.candidates:
            logo_searched = True
            self._search_by_logo(entity, slot)

        while True:
            options = self.options(slot, logo_searched)
            self.log.record("prompt")
            index = self.prompter.pick(f"pick one for {entity.name}", options)

            if index < len(slot.candidates):
                item = slot.candidates[index]
                return Resolution.resolved(item.link, item.name)

            choice = options[index]
            if choice == SKIP_ITEM:
                return Resolution.skipped()
            if choice == NO_LINK:
                return Resolution.no_link(entity.name)
            if choice == TYPE_LINK:
                link = self.prompter.ask(f"type a link for {entity.name}:").strip()
                if link:
                    return Resolution.resolved(link)
                return Resolution.failed(f"you didn't type anything for {entity.name}, skipping")
            # SEARCH_BY_LOGO
            logo_searched = True
            self._search_by_logo(entity, slot)
