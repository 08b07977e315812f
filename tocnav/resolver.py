"""Match a normalised link label against the rendered text.

Matching runs in tiers, each more forgiving than the last, and stops at the
first tier that produces a candidate:

1. the node text contains the label verbatim,
2. containment after collapsing whitespace runs on both sides,
3. containment after removing every period and whitespace on both sides,
4. the node contains (case-insensitively) any label word longer than two
   characters.

Several candidates in the winning tier are ordered by vertical position and
handed to a :class:`DisambiguationPolicy`. The default, ``SECOND``, assumes
the first occurrence is the TOC line that was clicked.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from .content_index import ContentIndex
from .headings import HeadingLocator
from .normalizer import collapse_whitespace, label_words, normalize_label, strip_periods_and_space
from .tree import Element


class MatchKind(Enum):
    EXACT = "exact"
    WHITESPACE_COLLAPSED = "whitespace_collapsed"
    STRIPPED = "stripped"
    PARTIAL_WORD = "partial_word"


@dataclass(frozen=True)
class MatchCandidate:
    node: Element
    match_kind: MatchKind
    top: float
    shared_words: int = 0


class DisambiguationPolicy(str, Enum):
    """Which of several position-ordered candidates to navigate to."""

    SECOND = "second"
    FIRST = "first"
    LAST = "last"

    def pick(self, candidates: Sequence[MatchCandidate]) -> MatchCandidate | None:
        if not candidates:
            return None
        if self is DisambiguationPolicy.FIRST:
            return candidates[0]
        if self is DisambiguationPolicy.LAST:
            return candidates[-1]
        return candidates[1] if len(candidates) > 1 else candidates[0]


def _tier_matchers(label: str) -> list[tuple[MatchKind, Callable[[str], bool]]]:
    collapsed = collapse_whitespace(label)
    stripped = strip_periods_and_space(label)
    return [
        (MatchKind.EXACT, lambda text: label in text),
        (MatchKind.WHITESPACE_COLLAPSED, lambda text: collapsed in collapse_whitespace(text)),
        (MatchKind.STRIPPED, lambda text: bool(stripped) and stripped in strip_periods_and_space(text)),
    ]


class CandidateResolver:
    """Resolve labels to rendered nodes.

    Parameters
    ----------
    index :
        Source of the mounted text nodes.
    policy :
        Disambiguation policy, as an enum member or its value.
    headings_only :
        Only consider nodes the :class:`HeadingLocator` reports as headings.
    rank_partial_matches :
        For the partial-word tier, keep only the candidates sharing the most
        words with the label before applying *policy*.
    """

    def __init__(
        self,
        index: ContentIndex,
        *,
        policy: DisambiguationPolicy | str = DisambiguationPolicy.SECOND,
        headings_only: bool = False,
        rank_partial_matches: bool = False,
    ) -> None:
        self.index = index
        self.policy = DisambiguationPolicy(policy)
        self.headings_only = headings_only
        self.rank_partial_matches = rank_partial_matches
        self._locator = HeadingLocator(index)

    def _nodes(self) -> list[tuple[Element, str]]:
        if self.headings_only:
            nodes = self._locator.headings()
        else:
            nodes = self.index.text_nodes()
        return [(node, normalize_label(node.text_content)) for node in nodes]

    def candidates(self, label: str) -> list[MatchCandidate]:
        """Return the candidates of the first matching tier, ordered by position."""

        if not label:
            return []
        nodes = self._nodes()

        for kind, matches in _tier_matchers(label):
            found = [
                MatchCandidate(node=node, match_kind=kind, top=node.bounding_top)
                for node, text in nodes
                if matches(text)
            ]
            if found:
                return sorted(found, key=lambda candidate: candidate.top)

        words = label_words(label)
        if not words:
            return []
        partial: list[MatchCandidate] = []
        for node, text in nodes:
            lowered = text.lower()
            shared = sum(1 for word in words if word in lowered)
            if shared:
                partial.append(
                    MatchCandidate(
                        node=node,
                        match_kind=MatchKind.PARTIAL_WORD,
                        top=node.bounding_top,
                        shared_words=shared,
                    )
                )
        partial.sort(key=lambda candidate: candidate.top)
        if self.rank_partial_matches and partial:
            best = max(candidate.shared_words for candidate in partial)
            partial = [candidate for candidate in partial if candidate.shared_words == best]
        return partial

    def resolve_candidate(self, label: str) -> MatchCandidate | None:
        return self.policy.pick(self.candidates(label))

    def resolve(self, label: str) -> Element | None:
        """Return the node to navigate to for *label*, or ``None``."""

        candidate = self.resolve_candidate(label)
        return candidate.node if candidate is not None else None
