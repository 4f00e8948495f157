"""
Placemark Record and Formatter

A placemark is one located address, normalized from whatever backend
returned it. Its formatted text is both the display label and the
deduplication key, so the field order below is part of the contract.
"""

from dataclasses import dataclass, field, fields
from typing import Optional


# (attribute, label) in output order
PLACEMARK_FIELDS = [
    ("name", "name"),
    ("country", "country"),
    ("administrative_area", "administrativeArea"),
    ("sub_administrative_area", "subAdministrativeArea"),
    ("locality", "locality"),
    ("sub_locality", "subLocality"),
    ("thoroughfare", "thoroughfare"),
    ("sub_thoroughfare", "subThoroughfare"),
]


@dataclass(frozen=True)
class PlacemarkRecord:
    """Normalized address record. Every field is either None or a non-empty string."""
    name: Optional[str] = None
    country: Optional[str] = None
    administrative_area: Optional[str] = None
    sub_administrative_area: Optional[str] = None
    locality: Optional[str] = None
    sub_locality: Optional[str] = None
    thoroughfare: Optional[str] = None
    sub_thoroughfare: Optional[str] = None
    # Position is informational only; it does not take part in equality or formatting
    latitude: Optional[float] = field(default=None, compare=False)
    longitude: Optional[float] = field(default=None, compare=False)

    def __post_init__(self):
        for attr, _label in PLACEMARK_FIELDS:
            value = getattr(self, attr)
            if value is None:
                continue
            value = str(value)
            object.__setattr__(self, attr, value if value else None)

    @property
    def text(self) -> str:
        return format_placemark(self)

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "PlacemarkRecord":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def format_placemark(record: PlacemarkRecord) -> str:
    """
    Render a placemark as its canonical text key.

    Present fields are emitted as ``label[value]`` in PLACEMARK_FIELDS order,
    joined by single spaces. Absent fields contribute nothing. Brackets inside
    values are not escaped, so ``name[a]b]`` is possible; kept as-is because
    existing labels depend on it.

        >>> format_placemark(PlacemarkRecord(name="A", locality="B"))
        'name[A] locality[B]'
    """
    parts = []
    for attr, label in PLACEMARK_FIELDS:
        value = getattr(record, attr)
        if value is not None:
            parts.append(f"{label}[{value}]")
    return " ".join(parts)
