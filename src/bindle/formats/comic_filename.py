# ABOUTME: Scene-style comic filename parsing ("Saga 054 (2018) (Digital) (Empire).cbz").
# ABOUTME: Pulls out series, issue, volume, and year; used for display hints, not as authority.

import re
from dataclasses import dataclass

# Release-group and year tags stripped before the series name is cleaned up.
DIGITAL_TAGS: tuple[str, ...] = (
    "(Digital)",
    "(digital)",
    "(Digital-Empire)",
    "(Digital-Empire-HD)",
    "(Minutemen-DTs)",
    "(Minutemen)",
    "(DTs)",
    "(Zone-Empire)",
    "(Glorith-HD)",
    "(Glorith)",
    "(DCP)",
    "(DR & Quinch-Empire)",
    "(Empire)",
    "(Oroboros-DCP)",
    "(KG-Empire)",
    "(Renegades-DCP)",
    "(GreenGiant-DCP)",
    *(f"({year})" for year in range(2013, 2026)),
    "[Digital]",
    "[digital]",
)

_YEAR_RE = re.compile(
    r"[(\[](?:(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+)?(\d{4})[)\]]"
)

# Tried in order; the first that matches supplies the issue number.
_ISSUE_RES = (
    re.compile(r"#\s*(\d+(?:\.\d+)?)"),
    re.compile(r"(?:No\.?|Issue)\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"\s(\d{3})(?:\s|$|\(|\[)"),
    re.compile(r"\s(\d{1,2})(?:\s+[(\[]|\s*$)"),
    re.compile(r"Annual\s*#?\s*(\d+)", re.IGNORECASE),
)

_VOLUME_RE = re.compile(r"(?:Vol(?:ume)?\.?\s*|v)(\d+)", re.IGNORECASE)
_PAREN_RE = re.compile(r"[(\[][^)\]]*[)\]]")
_MULTI_SPACE_RE = re.compile(r"\s+")
_TRAILING_DASH_RE = re.compile(r"\s*[-–—]\s*$")
_COMIC_EXTENSIONS = (".cbz", ".cbr", ".CBZ", ".CBR")


@dataclass
class ComicFilenameInfo:
    """Metadata guessed from a comic filename."""

    series: str = ""
    title: str = ""
    issue_number: str = ""
    issue_float: float = 0.0
    volume: int = 0
    year: int = 0
    raw_filename: str = ""


def parse_comic_filename(filename: str) -> ComicFilenameInfo:
    """Parse series, issue, volume, and year out of a comic filename.

    The rebuilt title reads like "Series Vol. 2 #15 (2019)", omitting any
    part that was not found.
    """
    info = ComicFilenameInfo(raw_filename=filename)

    name = filename
    for ext in _COMIC_EXTENSIONS:
        name = name.removesuffix(ext)

    match = _YEAR_RE.search(name)
    if match:
        year = int(match.group(1))
        if 1900 <= year <= 2100:
            info.year = year

    match = _VOLUME_RE.search(name)
    if match:
        info.volume = int(match.group(1))

    for pattern in _ISSUE_RES:
        match = pattern.search(name)
        if match:
            info.issue_number = match.group(1)
            info.issue_float = float(match.group(1))
            break

    cleaned = name
    for tag in DIGITAL_TAGS:
        cleaned = cleaned.replace(tag, "")
    cleaned = _PAREN_RE.sub("", cleaned)

    series = _VOLUME_RE.sub("", cleaned)
    for pattern in _ISSUE_RES:
        series = pattern.sub(" ", series)
    series = _MULTI_SPACE_RE.sub(" ", series)
    series = _TRAILING_DASH_RE.sub("", series).strip()
    info.series = series

    title = series
    if info.volume:
        title += f" Vol. {info.volume}"
    if info.issue_number:
        title += f" #{info.issue_number}"
    if info.year:
        title += f" ({info.year})"
    info.title = title

    return info
