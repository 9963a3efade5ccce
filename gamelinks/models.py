from dataclasses import dataclass, field
from typing import List, Optional

# Resolution statuses
RESOLVED = "resolved"
NO_LINK = "no_link"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class Entity:
    """One owned game: its name as exported and the URL of its logo."""

    name: str
    logo: str


@dataclass
class CandidateItem:
    """A possible store page for a game.

    rank 0 marks a substring match; otherwise it is the edit distance to the
    query name. Candidates found by logo search have an empty name.
    """

    name: str
    link: str
    rank: int = 0

    def display(self) -> str:
        if self.name:
            return f"{self.name}; {self.link}"
        return f"BY LOGO SEARCH; {self.link}"


@dataclass
class Slot:
    """Reusable scratch space for one in-flight search."""

    index: int = 0
    candidates: List[CandidateItem] = field(default_factory=list)
    display_lines: List[str] = field(default_factory=list)

    def clear(self) -> None:
        del self.candidates[:]
        del self.display_lines[:]

    def add(self, item: CandidateItem) -> None:
        self.candidates.append(item)
        self.display_lines.append(item.display())

    def links(self) -> List[str]:
        return [c.link for c in self.candidates]


@dataclass(frozen=True)
class Resolution:
    """Final outcome for one game."""

    status: str
    url: Optional[str] = None
    text: str = ""
    reason: str = ""

    @classmethod
    def resolved(cls, url: str, text: str = "") -> "Resolution":
        return cls(RESOLVED, url=url, text=text)

    @classmethod
    def no_link(cls, text: str) -> "Resolution":
        return cls(NO_LINK, text=text)

    @classmethod
    def skipped(cls) -> "Resolution":
        return cls(SKIPPED)

    @classmethod
    def failed(cls, reason: str) -> "Resolution":
        return cls(FAILED, reason=reason)

    @property
    def writes_output(self) -> bool:
        return self.status in (RESOLVED, NO_LINK)
