"""Pick the best byte-to-text decoding for tabular text without a declared charset."""

from __future__ import annotations

import codecs
import logging
import re
from typing import Iterable, List, Optional, Sequence

from .models import CandidateDecoding

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATES: Sequence[str] = ("cp949", "euc-kr", "utf-8")
DEFAULT_ENCODING = "utf-8"
SCRIPT_WEIGHT = 10
CONFIDENT_SCRIPT_HITS = 10
IMPORT_CJK_WEIGHT = 5

_BOM = "\ufeff"
_HANGUL_SYLLABLES = re.compile("[가-힣]")
_CJK_IDEOGRAPHS = re.compile("[一-龯]")
_KANA = re.compile("[\u3040-\u309f\u30a0-\u30ff]")
_NON_ASCII = re.compile(r"[^\x00-\x7f]")
_LINE_BREAK = re.compile(r"\r?\n")


def score_text(
    encoding: str,
    text: str,
    *,
    script_weight: int = SCRIPT_WEIGHT,
    cjk_weight: int = 0,
) -> CandidateDecoding:
    """Score *text*; Han ideographs and kana only count when *cjk_weight* is set."""

    script_hits = len(_HANGUL_SYLLABLES.findall(text))
    cjk_hits = 0
    if cjk_weight:
        cjk_hits = len(_CJK_IDEOGRAPHS.findall(text)) + len(_KANA.findall(text))
    non_ascii = len(_NON_ASCII.findall(text))
    return CandidateDecoding(
        encoding=encoding,
        text=text,
        score=script_hits * script_weight + cjk_hits * cjk_weight + non_ascii,
        script_hits=script_hits,
        non_ascii=non_ascii,
        cjk_hits=cjk_hits,
    )


def _ranking_key(candidate: CandidateDecoding) -> tuple[bool, int]:
    return (candidate.script_hits > 0, candidate.score)


def _strip_bom(text: str) -> str:
    return text[1:] if text.startswith(_BOM) else text


def rank_decodings(
    raw: bytes,
    candidates: Optional[Iterable[str]] = None,
    *,
    script_weight: int = SCRIPT_WEIGHT,
    confident_script_hits: int = CONFIDENT_SCRIPT_HITS,
    cjk_weight: int = 0,
) -> List[CandidateDecoding]:
    """Decode *raw* under each candidate and return them best first.

    A candidate whose script-hit count exceeds *confident_script_hits* ends the
    ranking early: it is returned at the head of whatever was ranked so far and
    the remaining candidates are never decoded. Candidates that fail to decode
    strictly are skipped. A leading byte order mark is not part of the text.
    """

    ranked: List[CandidateDecoding] = []
    for encoding in candidates or DEFAULT_CANDIDATES:
        try:
            text = _strip_bom(raw.decode(encoding))
        except (UnicodeDecodeError, LookupError) as exc:
            logger.debug("Skipping %s decoding: %s", encoding, exc)
            continue
        candidate = score_text(encoding, text, script_weight=script_weight, cjk_weight=cjk_weight)
        if candidate.script_hits > confident_script_hits:
            return [candidate] + _sorted(ranked)
        ranked.append(candidate)
    return _sorted(ranked)


def _sorted(ranked: List[CandidateDecoding]) -> List[CandidateDecoding]:
    # stable: equal keys keep priority order
    return sorted(ranked, key=_ranking_key, reverse=True)


def sniff(
    raw: bytes,
    candidates: Optional[Iterable[str]] = None,
    *,
    default_encoding: str = DEFAULT_ENCODING,
    script_weight: int = SCRIPT_WEIGHT,
    confident_script_hits: int = CONFIDENT_SCRIPT_HITS,
    cjk_weight: int = 0,
) -> CandidateDecoding:
    """Return the winning decoding for *raw*; never raises for bad bytes.

    A UTF-8 byte order mark settles the question before any candidate is
    tried, as long as the rest of the buffer is valid UTF-8.
    """

    if not raw:
        return CandidateDecoding(encoding=default_encoding, text="")
    if raw.startswith(codecs.BOM_UTF8):
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.debug("UTF-8 byte order mark present but content is not UTF-8")
        else:
            return score_text("utf-8", text, script_weight=script_weight, cjk_weight=cjk_weight)

    ranked = rank_decodings(
        raw,
        candidates,
        script_weight=script_weight,
        confident_script_hits=confident_script_hits,
        cjk_weight=cjk_weight,
    )
    if ranked and ranked[0].score > 0:
        return ranked[0]
    for candidate in ranked:
        if candidate.encoding == default_encoding:
            return candidate
    logger.debug("No candidate scored; falling back to %s with replacement", default_encoding)
    text = _strip_bom(raw.decode(default_encoding, errors="replace"))
    return score_text(default_encoding, text, script_weight=script_weight, cjk_weight=cjk_weight)


def split_lines(text: str) -> List[str]:
    """Split on ``\\r?\\n`` and drop whitespace-only lines."""

    return [line for line in _LINE_BREAK.split(text) if line.strip()]


__all__ = [
    "CONFIDENT_SCRIPT_HITS",
    "DEFAULT_CANDIDATES",
    "DEFAULT_ENCODING",
    "IMPORT_CJK_WEIGHT",
    "SCRIPT_WEIGHT",
    "rank_decodings",
    "score_text",
    "sniff",
    "split_lines",
]
