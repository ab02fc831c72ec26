"""Text layout for certificates.

Each configured :class:`TextElement` pulls one field from a roster record,
formats it, shrinks its font until it fits the allowed width and centres it
horizontally. Measurement is delegated to a ``measure(text, size)`` callable so
the layout does not depend on a particular rendering backend.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Sequence, Tuple

from teamcert.errors import TextOverflowError
from teamcert.roster_handler import RosterRecord

Measure = Callable[[str, int], float]

DEFAULT_MAX_WIDTH_RATIO = 0.7


def format_team_name(team_name: str) -> str:
    """Team names are shown ALL UPPERCASE."""
    return " ".join(word.upper() for word in (team_name or "").split())


def format_organization_name(organization_name: str) -> str:
    # Naive per-word title case; hyphens, apostrophes and acronyms are not special-cased.
    return " ".join(word[:1].upper() + word[1:].lower() for word in (organization_name or "").split())


@dataclass(frozen=True)
class TextElement:
    """Where and how one record field is drawn.

    ``vertical_position`` is a fraction of the canvas height measured from the
    bottom edge; ``horizontal_offset`` nudges the centred text in pixels.
    """

    field: str
    formatter: Callable[[str], str]
    initial_font_size: int
    min_font_size: int
    vertical_position: float
    horizontal_offset: float = 0


TEAM_NAME_ELEMENT = TextElement(
    field="team_name",
    formatter=format_team_name,
    initial_font_size=40,
    min_font_size=20,
    vertical_position=0.68,
    horizontal_offset=-25,
)

ORGANIZATION_ELEMENT = TextElement(
    field="organization_name",
    formatter=format_organization_name,
    initial_font_size=20,
    min_font_size=20,
    vertical_position=0.65,
    horizontal_offset=0,
)

DEFAULT_ELEMENTS = (TEAM_NAME_ELEMENT, ORGANIZATION_ELEMENT)
TEAM_ONLY_ELEMENTS = (TEAM_NAME_ELEMENT,)


def scale_elements(elements: Iterable[TextElement], factor: float) -> Tuple[TextElement, ...]:
    """Scale font sizes and offsets for templates larger than an 842px-wide page."""
    if factor == 1:
        return tuple(elements)
    return tuple(
        replace(
            element,
            initial_font_size=max(1, round(element.initial_font_size * factor)),
            min_font_size=max(1, round(element.min_font_size * factor)),
            horizontal_offset=element.horizontal_offset * factor,
        )
        for element in elements
    )


@dataclass(frozen=True)
class LayoutSpec:
    text: str
    initial_font_size: int
    min_font_size: int
    vertical_position: float
    horizontal_offset: float
    font_size: int
    width: float
    x: float
    y: float


def fit_font_size(text: str, measure: Measure, initial_size: int, min_size: int, max_width: float) -> int:
    """Return the largest integer size <= ``initial_size`` whose width fits ``max_width``.

    Sizes are tried one point at a time from the top. If nothing fits, the
    result is ``min_size`` and the caller decides what to do with the overflow.
    """
    size = initial_size
    width = measure(text, size)
    while width > max_width and size > min_size:
        size -= 1
        width = measure(text, size)
    return size


def centered_x(canvas_width: float, text_width: float, horizontal_offset: float = 0) -> float:
    return (canvas_width - text_width) / 2 + horizontal_offset


def build_layout(
    record: RosterRecord,
    elements: Iterable[TextElement],
    canvas_size: Sequence[float],
    measure: Measure,
    max_width_ratio: float = DEFAULT_MAX_WIDTH_RATIO,
    strict_fit: bool = False,
) -> List[LayoutSpec]:
    """
    Lay out every element that has text for ``record``

    Args:
        record: The verified roster record
        elements: Text slots to fill, drawn in order
        canvas_size: (width, height) of the page
        measure: Width of a string at a font size
        max_width_ratio: Fraction of the canvas width text may occupy
        strict_fit: Raise instead of overflowing when the floor size is too wide

    Returns:
        Placed text, in bottom-up page coordinates

    Raises:
        TextOverflowError: If ``strict_fit`` is set and some text cannot fit
    """
    canvas_width, canvas_height = canvas_size
    max_width = canvas_width * max_width_ratio

    specs: List[LayoutSpec] = []
    for element in elements:
        text = element.formatter(getattr(record, element.field, "") or "")
        if not text:
            continue

        size = fit_font_size(text, measure, element.initial_font_size, element.min_font_size, max_width)
        width = measure(text, size)
        if strict_fit and width > max_width:
            raise TextOverflowError(
                f"{element.field} is {width:.1f}px wide at {size}pt; limit is {max_width:.1f}px"
            )

        specs.append(
            LayoutSpec(
                text=text,
                initial_font_size=element.initial_font_size,
                min_font_size=element.min_font_size,
                vertical_position=element.vertical_position,
                horizontal_offset=element.horizontal_offset,
                font_size=size,
                width=width,
                x=centered_x(canvas_width, width, element.horizontal_offset),
                y=canvas_height * element.vertical_position,
            )
        )
    return specs
