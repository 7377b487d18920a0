# matcher.py
import logging
import random
import re
import threading
from collections import deque
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config import (
    AGE_GAP_MAX,
    AGE_GAP_MIN,
    BASE_SCORE,
    HEIGHT_GAP_MAX,
    HEIGHT_GAP_MIN,
    MAX_RECENT_MATCHES,
    MAX_SCORE,
    PROFESSION_BONUS,
    SCORE_JITTER_MAX,
)

logger = logging.getLogger(__name__)

_HEIGHT_RE = re.compile(r"(\d+)'(\d+)\"")


class MatchError(Exception):
    pass


class InvalidInput(MatchError):
    pass


class NoMatchFound(MatchError):
    pass


class MatchInput(BaseModel):
    name: str
    age: int = Field(ge=0)
    gender: Literal["Male", "Female"]
    profession: Optional[str] = None
    height: str


class CandidateProfile(BaseModel):
    # stored profiles carry more columns; keep them for the response
    model_config = ConfigDict(extra="allow")

    id: int
    age: int
    gender: Literal["Male", "Female"]
    profession: Optional[str] = None
    height: str


class MatchResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    input_profile: MatchInput
    matched_profile: CandidateProfile
    compatibility_score: int


def parse_height(height: Optional[str]) -> int:
    """Convert a height string like 5'6" to inches. Anything unparseable is 0."""
    if not height:
        return 0
    m = _HEIGHT_RE.search(height)
    if not m:
        return 0
    return int(m.group(1)) * 12 + int(m.group(2))


def _within(value: int, low: int, high: int) -> bool:
    return low <= value <= high


def is_compatible_match(criteria: MatchInput, candidate: CandidateProfile) -> bool:
    """
    Decide whether `candidate` is an eligible match for `criteria`.

    The groom (whichever side is Male) must have a profession, be
    AGE_GAP_MIN..AGE_GAP_MAX years older and HEIGHT_GAP_MIN..HEIGHT_GAP_MAX
    inches taller than the bride.
    """
    if criteria.gender == candidate.gender:
        return False

    if criteria.gender == "Male":
        if not criteria.profession:
            return False
    elif not candidate.profession:
        return False

    input_inches = parse_height(criteria.height)
    candidate_inches = parse_height(candidate.height)

    if criteria.gender == "Male":
        age_diff = criteria.age - candidate.age
        height_diff = input_inches - candidate_inches
    else:
        age_diff = candidate.age - criteria.age
        height_diff = candidate_inches - input_inches

    return (
        _within(age_diff, AGE_GAP_MIN, AGE_GAP_MAX)
        and _within(height_diff, HEIGHT_GAP_MIN, HEIGHT_GAP_MAX)
    )


def find_matches(
    criteria: MatchInput, candidates: Sequence[CandidateProfile]
) -> List[CandidateProfile]:
    """Return the compatible candidates, order preserved."""
    return [c for c in candidates if is_compatible_match(criteria, c)]


class RecentMatchWindow:
    """
    FIFO of the last few matched profile ids, shared by every match request
    of a process. All reads and writes go through the internal lock.
    """

    def __init__(self, size: int = MAX_RECENT_MATCHES):
        self.size = size
        self._ids = deque(maxlen=size)
        self._lock = threading.Lock()

    def __contains__(self, profile_id: int) -> bool:
        with self._lock:
            return profile_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def ids(self) -> List[int]:
        """Snapshot, oldest first."""
        with self._lock:
            return list(self._ids)

    def clear(self) -> None:
        with self._lock:
            self._ids.clear()

    def select(
        self, compatible: Sequence[CandidateProfile], rng: random.Random
    ) -> CandidateProfile:
        """
        Pick one candidate uniformly, skipping recently matched ids when
        possible. If every candidate is recent the window is reset and the
        whole compatible set is used. The chosen id is recorded.
        """
        if not compatible:
            raise ValueError("select() needs at least one compatible candidate")

        with self._lock:
            pool = [c for c in compatible if c.id not in self._ids]
            if not pool:
                logger.debug(
                    "All %d compatible profiles were recently matched, resetting window",
                    len(compatible),
                )
                self._ids.clear()
                pool = list(compatible)

            selected = rng.choice(pool)
            # deque(maxlen) drops the oldest id on overflow
            self._ids.append(selected.id)
            return selected


def calculate_compatibility_score(
    criteria: MatchInput, matched: CandidateProfile, rng: random.Random
) -> int:
    score = BASE_SCORE
    if criteria.profession and matched.profession:
        score += PROFESSION_BONUS
    score += rng.randint(0, SCORE_JITTER_MAX)
    return min(score, MAX_SCORE)


def find_match(
    criteria: MatchInput,
    candidate_pool: Sequence[CandidateProfile],
    window: RecentMatchWindow,
    rng: Optional[random.Random] = None,
) -> MatchResult:
    """
    Match `criteria` against every stored profile.

    Raises InvalidInput for a groom without a profession and NoMatchFound
    when no opposite-gender profile is compatible.
    """
    if criteria.gender == "Male" and not criteria.profession:
        raise InvalidInput("Groom profession is mandatory")

    rng = rng or random.Random()

    opposite = [p for p in candidate_pool if p.gender != criteria.gender]
    compatible = find_matches(criteria, opposite)
    logger.debug(
        "%d of %d opposite-gender profiles compatible", len(compatible), len(opposite)
    )
    if not compatible:
        raise NoMatchFound("No compatible matches found")

    selected = window.select(compatible, rng)
    score = calculate_compatibility_score(criteria, selected, rng)

    return MatchResult(
        input_profile=criteria,
        matched_profile=selected,
        compatibility_score=score,
    )
