"""
Bit-parallel approximate substring search (Bitap / shift-or with errors).

A pattern is searched inside a text allowing substitutions, insertions and
deletions. The score of a hit combines how many edits it needed with how far
from the expected location it was found:

    score = errors / len(pattern) + |expected_location - location| / distance

0 is an identical string; anything above the threshold is not a match.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

# Floor for any non-identical match so it never ties with an exact one.
MIN_NON_EXACT_SCORE = 0.001


@dataclass(frozen=True)
class BitapResult:
    """Outcome of searching one pattern in one text."""
    is_match: bool
    score: float
    indices: Tuple[Tuple[int, int], ...] = ()


NO_MATCH = BitapResult(is_match=False, score=1.0)


def create_pattern_alphabet(pattern: str) -> Dict[str, int]:
    """Map each pattern character to a bitmask of the positions it occupies."""
    alphabet: Dict[str, int] = {}
    length = len(pattern)
    for i, char in enumerate(pattern):
        alphabet[char] = alphabet.get(char, 0) | (1 << (length - i - 1))
    return alphabet


def compute_score(
    pattern_length: int,
    errors: int = 0,
    current_location: int = 0,
    expected_location: int = 0,
    distance: int = 100,
    ignore_location: bool = False,
) -> float:
    """Score a candidate hit: edit accuracy plus positional decay."""
    accuracy = errors / pattern_length
    if ignore_location:
        return accuracy

    proximity = abs(expected_location - current_location)
    if not distance:
        # With no tolerated drift only hits at the expected spot count.
        return 1.0 if proximity else accuracy

    return accuracy + proximity / distance


def mask_to_indices(match_mask: List[int], min_match_char_length: int = 1) -> Tuple[Tuple[int, int], ...]:
    """Collapse a per-character match mask into inclusive (start, end) runs."""
    indices = []
    start = -1

    for i, matched in enumerate(match_mask):
        if matched and start == -1:
            start = i
        elif not matched and start != -1:
            if i - start >= min_match_char_length:
                indices.append((start, i - 1))
            start = -1

    if start != -1 and len(match_mask) - start >= min_match_char_length:
        indices.append((start, len(match_mask) - 1))

    return tuple(indices)


def search(
    text: str,
    pattern: str,
    alphabet: Optional[Dict[str, int]] = None,
    *,
    threshold: float = 0.4,
    distance: int = 100,
    location: int = 0,
    ignore_location: bool = False,
    find_all_matches: bool = False,
    min_match_char_length: int = 1,
    include_matches: bool = False,
) -> BitapResult:
    """
    Find the best approximate occurrence of ``pattern`` in ``text``.

    Both strings are compared as given; callers fold case beforehand.
    ``alphabet`` may be precomputed with :func:`create_pattern_alphabet` when
    the same pattern is searched in many texts.
    """
    if not pattern:
        return NO_MATCH

    if text == pattern:
        indices = ((0, len(text) - 1),) if include_matches else ()
        return BitapResult(is_match=True, score=0.0, indices=indices)

    if alphabet is None:
        alphabet = create_pattern_alphabet(pattern)

    pattern_len = len(pattern)
    text_len = len(text)
    expected_location = max(0, min(location, text_len))

    def score_at(errors: int, current_location: int) -> float:
        return compute_score(
            pattern_len,
            errors=errors,
            current_location=current_location,
            expected_location=expected_location,
            distance=distance,
            ignore_location=ignore_location,
        )

    current_threshold = threshold
    best_location = expected_location

    compute_matches = min_match_char_length > 1 or include_matches
    match_mask = [0] * text_len if compute_matches else []

    # Exact occurrences tighten the threshold before the fuzzy pass.
    index = text.find(pattern, best_location)
    while index > -1:
        current_threshold = min(score_at(0, index), current_threshold)
        best_location = index + pattern_len

        if compute_matches:
            for offset in range(pattern_len):
                match_mask[index + offset] = 1

        index = text.find(pattern, best_location)

    best_location = -1
    best_score = 1.0
    last_bit_arr: List[int] = []
    bin_max = pattern_len + text_len
    mask = 1 << (pattern_len - 1)

    for errors in range(pattern_len):
        # Binary search for how far from the expected location a hit with
        # this many errors could still land under the threshold.
        bin_min = 0
        bin_mid = bin_max
        while bin_min < bin_mid:
            if score_at(errors, expected_location + bin_mid) <= current_threshold:
                bin_min = bin_mid
            else:
                bin_max = bin_mid
            bin_mid = (bin_max - bin_min) // 2 + bin_min

        bin_max = bin_mid

        start = max(1, expected_location - bin_mid + 1)
        if find_all_matches:
            finish = text_len
        else:
            finish = min(expected_location + bin_mid, text_len) + pattern_len

        bit_arr = [0] * (finish + 2)
        bit_arr[finish + 1] = (1 << errors) - 1

        j = finish
        while j >= start:
            current_location = j - 1
            if current_location < text_len:
                char_match = alphabet.get(text[current_location], 0)
                if compute_matches:
                    match_mask[current_location] = 1 if char_match else 0
            else:
                char_match = 0

            bit_arr[j] = ((bit_arr[j + 1] << 1) | 1) & char_match

            if errors:
                bit_arr[j] |= ((last_bit_arr[j + 1] | last_bit_arr[j]) << 1) | 1 | last_bit_arr[j + 1]

            if bit_arr[j] & mask:
                score = score_at(errors, current_location)
                if score <= current_threshold:
                    current_threshold = score
                    best_score = score
                    best_location = current_location

                    if best_location <= expected_location:
                        break

                    start = max(1, 2 * expected_location - best_location)
            j -= 1

        # One more error would already exceed the threshold at the best spot.
        if score_at(errors + 1, expected_location) > current_threshold:
            break

        last_bit_arr = bit_arr

    if best_location < 0:
        return NO_MATCH

    indices: Tuple[Tuple[int, int], ...] = ()
    if compute_matches:
        indices = mask_to_indices(match_mask, min_match_char_length)
        if not indices:
            return NO_MATCH
        if not include_matches:
            indices = ()

    score = max(MIN_NON_EXACT_SCORE, best_score)
    # The floor can lift a hit over a threshold below it.
    if score > threshold:
        return NO_MATCH

    return BitapResult(is_match=True, score=score, indices=indices)
