"""
Walk a document tree along a fixed path of (tag, child index) steps.

The walk only needs first-child, next-sibling and tag name from a node, so it
is written against the small TreeNode protocol. SoupNode adapts BeautifulSoup
elements to it.
"""

from typing import Any, NamedTuple, Optional, Protocol, Sequence

from bs4.element import PageElement


class TreeNode(Protocol):
    @property
    def tag(self) -> Optional[str]: ...

    def first_child(self) -> Optional["TreeNode"]: ...

    def next_sibling(self) -> Optional["TreeNode"]: ...


class Step(NamedTuple):
    tag: str
    index: int = 1


class StructureMismatch(Exception):
    """The document does not have the expected shape at some step."""

    def __init__(self, step: int, expected: str, actual: Optional[str] = None, reason: str = ""):
        self.step = step
        self.expected = expected
        self.actual = actual
        if not reason:
            reason = f"expected tag {expected!r} != {actual!r}"
        super().__init__(f"step {step} ({expected}): {reason}")


class SoupNode:
    """TreeNode view of a BeautifulSoup element. Text nodes have tag None."""

    __slots__ = ("element",)

    def __init__(self, element: PageElement):
        self.element = element

    @property
    def tag(self) -> Optional[str]:
        return getattr(self.element, "name", None)

    def first_child(self) -> Optional["SoupNode"]:
        contents = getattr(self.element, "contents", None)
        if not contents:
            return None
        return SoupNode(contents[0])

    def next_sibling(self) -> Optional["SoupNode"]:
        sibling = self.element.next_sibling
        return SoupNode(sibling) if sibling is not None else None

    def get(self, attr: str, default: Any = None) -> Any:
        getter = getattr(self.element, "get", None)
        return getter(attr, default) if getter else default


def nth_children(node: TreeNode, steps: Sequence[Step]) -> TreeNode:
    """Descend from ``node`` one step at a time.

    Each step moves to the first child, then ``index - 1`` siblings further,
    and checks the tag there. Raises StructureMismatch on a missing node or a
    tag that does not match.
    """
    for i, step in enumerate(steps):
        tag, index = step
        node = node.first_child()
        if node is None:
            raise StructureMismatch(i, tag, reason="no first child")
        for j in range(index - 1):
            node = node.next_sibling()
            if node is None:
                raise StructureMismatch(i, tag, reason=f"no sibling #{j + 1}")
        if node.tag != tag:
            raise StructureMismatch(i, tag, node.tag)
    return node
