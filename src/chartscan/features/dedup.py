"""Duplicate pattern resolution."""

from chartscan.config import get_logger
from chartscan.core.models import Pattern, PatternType

logger = get_logger("features.dedup")

DEDUP_THRESHOLD = 0.7


def pattern_height(pattern: Pattern) -> float:
    """Price height of a pattern from its pivots."""
    prices = [p.price for p in pattern.pivots]
    if len(prices) >= 3 and pattern.type == PatternType.DOUBLE_TOP.value:
        return max(0.0, max(prices[0], prices[2]) - prices[1])
    if len(prices) >= 3 and pattern.type == PatternType.DOUBLE_BOTTOM.value:
        return max(0.0, prices[1] - min(prices[0], prices[2]))
    if not prices:
        return 0.0
    return max(prices) - min(prices)


def _bounds(pattern: Pattern, use_time: bool) -> tuple[float, float]:
    r = pattern.range
    if use_time:
        return r.start.timestamp(), r.end.timestamp()
    return float(r.start_index), float(r.end_index)


def overlap_ratio(a: Pattern, b: Pattern) -> float:
    """
    Overlap of two ranges as a share of the shorter one.

    Measured in time when both ranges carry times, in bars otherwise.
    """
    use_time = all(
        t is not None for t in (a.range.start, a.range.end, b.range.start, b.range.end)
    )
    a_start, a_end = _bounds(a, use_time)
    b_start, b_end = _bounds(b, use_time)
    overlap = max(0.0, min(a_end, b_end) - max(a_start, b_start))
    shorter = min(max(1.0, a_end - a_start), max(1.0, b_end - b_start))
    return overlap / shorter


def _preference(pattern: Pattern) -> tuple[float, float, float]:
    r = pattern.range
    end = r.end.timestamp() if r.end is not None else float(r.end_index)
    return end, pattern.confidence, pattern_height(pattern)


def deduplicate(patterns: list[Pattern], threshold: float = DEDUP_THRESHOLD) -> list[Pattern]:
    """
    Collapse same-type patterns whose ranges overlap beyond the threshold.

    Among overlapping patterns the one with the later end wins, then the
    higher confidence, then the larger height. The output holds no pair of
    same-type patterns overlapping beyond the threshold, so a second pass
    returns it unchanged.
    """
    result: list[Pattern] = []
    for pattern in patterns:
        overlapping = [
            kept for kept in result
            if kept.type == pattern.type and overlap_ratio(kept, pattern) > threshold
        ]
        if not overlapping:
            result.append(pattern)
            continue

        chosen = max([*overlapping, pattern], key=_preference)
        losers = {id(kept) for kept in overlapping if kept is not chosen}
        result = [kept for kept in result if id(kept) not in losers]
        if chosen is pattern:
            result.append(pattern)

    if len(result) < len(patterns):
        logger.debug(f"Deduplicated {len(patterns)} patterns to {len(result)}")
    return result
