from typing import List, Optional
from urllib.parse import quote_plus, urljoin

from bs4 import BeautifulSoup

from ..config import Settings
from ..extract import SoupNode, Step, StructureMismatch, nth_children
from ..logger import get_logger
from ..models import CandidateItem, Slot
from ..normalize import NoSeparator, fuzzy_prefix, normalize_name, probe_slug
from ..ranking import rank_candidates
from .common import FetchClient, FetchError

RESULT_LIST_SELECTOR = "section > section > ul"
# li > div > div > a holds the title in aria-label and the page in href
ITEM_PATH = (Step("div", 1), Step("div", 1), Step("a", 1))


class SearchError(Exception):
    """The search page could not be fetched or did not look as expected."""


def parse_aria_label(label: str) -> str:
    """Pull the title out of a result's aria-label.

    The label is a comma separated list whose layout depends on the offer:
    with three parts the title is the second, otherwise the third.
    """
    parts = label.split(", ")
    if len(parts) == 3:
        return parts[1]
    if len(parts) > 3:
        return parts[2]
    return ""


class StoreClient:
    """Direct page probing and catalog search against the store."""

    def __init__(self, fetcher: FetchClient, settings: Optional[Settings] = None, log=None):
        self.fetcher = fetcher
        self.settings = settings or fetcher.settings
        self.log = log or get_logger()

    def page_url(self, slug: str) -> str:
        return f"{self.settings.store_host}/{self.settings.store_locale}/p/{slug}"

    def search_url(self, query: str) -> str:
        return (
            f"{self.settings.store_host}/{self.settings.store_locale}/browse"
            f"?q={quote_plus(query)}&sortBy=relevancy&sortDir=DESC&count={self.settings.page_size}"
        )

    def probe(self, name: str) -> Optional[str]:
        """Return the page URL guessed from the name if the store serves it.

        Raises FetchError if the page cannot be fetched at all.
        """
        url = self.page_url(probe_slug(name))
        result = self.fetcher.fetch(url)
        hit = not result.not_found
        self.log.record("probe", hit)
        return url if hit else None

    def parse_item(self, li) -> CandidateItem:
        anchor = nth_children(SoupNode(li), ITEM_PATH)
        label = anchor.get("aria-label")
        href = anchor.get("href")
        if not label:
            raise SearchError(f"aria-label not found in {anchor.element.attrs!r}")
        name = parse_aria_label(label)
        if not name:
            raise SearchError(f"unexpected aria-label format: {label!r}")
        if not href:
            raise SearchError(f"href not found in {anchor.element.attrs!r}")
        return CandidateItem(name=name, link=urljoin(self.settings.store_host, href))

    def search(self, name: str, slot: Slot, fuzzy: bool = False) -> Optional[CandidateItem]:
        """Search the catalog for ``name``.

        In exact mode a result whose title equals the name is returned at once.
        Otherwise the slot is filled with the ranked results and None is
        returned. In fuzzy mode the query is the name cut at its first
        separator, and no result short-circuits.

        Raises SearchError when the page is missing or malformed; results read
        before the failure are left ranked in the slot.
        """
        slot.clear()
        query = normalize_name(name)
        if fuzzy:
            try:
                query = fuzzy_prefix(query)
            except NoSeparator as e:
                self.log.warning(str(e))

        url = self.search_url(query)
        try:
            result = self.fetcher.fetch(url)
        except FetchError as e:
            raise SearchError(f"failed to search {url}: {e}") from e
        if result.not_found:
            raise SearchError(f"search page not found: {url}")

        soup = BeautifulSoup(result.body, "html.parser")
        container = soup.select_one(RESULT_LIST_SELECTOR)
        if container is None:
            raise SearchError(f"no result list found at {url}")
        lis = container.find_all("li")
        if not lis:
            raise SearchError(f"no result items found at {url}")

        found: List[CandidateItem] = []
        try:
            for i, li in enumerate(lis):
                try:
                    item = self.parse_item(li)
                except StructureMismatch as e:
                    self.log.warning(f"Skipping result {i} for {query!r}: {e}")
                    continue
                if not fuzzy and item.name == query:
                    self.log.record("search", True)
                    return item
                found.append(item)
        except SearchError:
            self._fill(slot, found, query)
            raise

        self.log.record("search", False)
        self._fill(slot, found, query)
        return None

    @staticmethod
    def _fill(slot: Slot, items: List[CandidateItem], query: str) -> None:
        for item in rank_candidates(items, query):
            slot.add(item)
