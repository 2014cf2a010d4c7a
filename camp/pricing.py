"""Pricing engine: option catalog and price breakdown for a seminar registration."""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PriceOption(BaseModel):
    """A selectable option with its display label and amount."""

    model_config = ConfigDict(frozen=True)

    label: str
    amount: int


class PriceCatalog(BaseModel):
    """Immutable option tables for the three priced categories."""

    model_config = ConfigDict(frozen=True)

    camp_type: Mapping[str, PriceOption]
    meal_plan: Mapping[str, PriceOption]
    accommodation: Mapping[str, PriceOption]
    currency: str = "EUR"
    default_camp_type: str = "iaido"
    default_meal_plan: str = "none"
    default_accommodation: str = "none"

    def model_post_init(self, __context: Any) -> None:
        # Freeze the option tables so a shared catalog can't be edited in place
        for name in ("camp_type", "meal_plan", "accommodation"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def options(self) -> dict:
        """Catalog as served by GET /api/pricing."""
        return {
            "campType": {code: opt.model_dump() for code, opt in self.camp_type.items()},
            "mealPlan": {code: opt.model_dump() for code, opt in self.meal_plan.items()},
            "accommodation": {code: opt.model_dump() for code, opt in self.accommodation.items()},
        }


DEFAULT_CATALOG = PriceCatalog(
    camp_type={
        "iaido": PriceOption(label="Iaido seminar", amount=149),
        "jodo": PriceOption(label="Jodo seminar", amount=149),
        "both": PriceOption(label="Iaido + Jodo seminar", amount=249),
    },
    meal_plan={
        "none": PriceOption(label="No meal", amount=0),
        "lunch": PriceOption(label="Lunch package", amount=33),
        "full": PriceOption(label="Full meal package", amount=60),
    },
    accommodation={
        "none": PriceOption(label="No accommodation", amount=0),
        "dojo": PriceOption(label="Dojo accommodation", amount=73),
        "guesthouse": PriceOption(label="Guesthouse", amount=135),
    },
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PricingSelection(_CamelModel):
    camp_type: str
    meal_plan: str
    accommodation: str


class LineItem(_CamelModel):
    key: str  # campType, mealPlan, accommodation
    code: str
    label: str
    amount: int


class PricingBreakdown(_CamelModel):
    """Priced snapshot stored with each registration."""

    selection: PricingSelection
    line_items: list[LineItem]
    total: int
    currency: str


def resolve_option(value: Any, options: Mapping[str, PriceOption], fallback: str) -> str:
    """Return the trimmed code if it is a known option, else the fallback."""
    code = str(value if value is not None else "").strip()
    return code if code in options else fallback


def resolve_selection(
    camp_type: Any,
    meal_plan: Any,
    accommodation: Any,
    catalog: PriceCatalog = DEFAULT_CATALOG,
) -> PricingSelection:
    return PricingSelection(
        camp_type=resolve_option(camp_type, catalog.camp_type, catalog.default_camp_type),
        meal_plan=resolve_option(meal_plan, catalog.meal_plan, catalog.default_meal_plan),
        accommodation=resolve_option(accommodation, catalog.accommodation, catalog.default_accommodation),
    )


def calculate_pricing(
    camp_type: Any = None,
    meal_plan: Any = None,
    accommodation: Any = None,
    catalog: PriceCatalog = DEFAULT_CATALOG,
) -> PricingBreakdown:
    """Price a selection. Unknown or empty codes fall back to the catalog defaults."""
    selection = resolve_selection(camp_type, meal_plan, accommodation, catalog)
    picks = [
        ("campType", selection.camp_type, catalog.camp_type),
        ("mealPlan", selection.meal_plan, catalog.meal_plan),
        ("accommodation", selection.accommodation, catalog.accommodation),
    ]
    line_items = [
        LineItem(key=key, code=code, label=table[code].label, amount=table[code].amount)
        for key, code, table in picks
    ]
    return PricingBreakdown(
        selection=selection,
        line_items=line_items,
        total=sum(item.amount for item in line_items),
        currency=catalog.currency,
    )
