"""
Profile Models
===============

Pydantic-Modelle für Geräte-Identitäts-Profile.

Ein Profil ist eine benannte, unveränderliche Zuordnung
AttributeKey → Literalwert. Die Keys sind ein geschlossenes Enum:
ein unbekannter Slot ist per Konstruktion nicht schreibbar.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, Union

from pydantic import BaseModel, Field, field_validator

from propguard.config import PROFILE_TABLE, validate_profile_table


class AttributeKey(str, Enum):
    """Schreibbare Slots im Attribute Store (Build-Felder)."""
    BRAND = "BRAND"
    MANUFACTURER = "MANUFACTURER"
    DEVICE = "DEVICE"
    PRODUCT = "PRODUCT"
    MODEL = "MODEL"
    FINGERPRINT = "FINGERPRINT"
    DEVICE_INITIAL_SDK_INT = "DEVICE_INITIAL_SDK_INT"   # Build.VERSION


AttributeValue = Union[int, str]


class AttributeProfile(BaseModel):
    """
    Benanntes Set von Attribut-Overrides.

    Beispiel:
        AttributeProfile(name="compat-xl", values={"DEVICE": "marlin", ...})
    """

    name: str = Field(..., min_length=1)
    values: dict[AttributeKey, AttributeValue] = Field(..., min_length=1)

    model_config = {"frozen": True}

    @field_validator("values")
    @classmethod
    def validate_values(
        cls, v: dict[AttributeKey, AttributeValue],
    ) -> dict[AttributeKey, AttributeValue]:
        """SDK-Version muss int sein, alle anderen Werte nicht-leere Strings."""
        for key, value in v.items():
            if key is AttributeKey.DEVICE_INITIAL_SDK_INT:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"{key.value} muss int sein, bekam {value!r}")
            elif not isinstance(value, str) or not value.strip():
                raise ValueError(f"{key.value} muss ein nicht-leerer String sein")
        return v

    @classmethod
    def single(cls, name: str, key: AttributeKey, value: AttributeValue) -> AttributeProfile:
        """Ein-Attribut-Override (z.B. nur FINGERPRINT)."""
        return cls(name=name, values={key: value})

    def items(self) -> Iterator[tuple[AttributeKey, AttributeValue]]:
        return iter(self.values.items())

    def __len__(self) -> int:
        return len(self.values)


def load_profiles(
    table: dict[str, dict[str, str | int]] | None = None,
) -> dict[str, AttributeProfile]:
    """Baut die AttributeProfile-Objekte aus der (validierten) Config-Tabelle."""
    valid = validate_profile_table(table if table is not None else PROFILE_TABLE)
    return {
        name: AttributeProfile(name=name, values=values)
        for name, values in valid.items()
    }
