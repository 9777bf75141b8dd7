"""
Browse filters: criteria, the in-memory filter pass and the query-string
representation that makes a filtered view shareable.

Everything here is pure; listings may be ORM rows or plain mappings.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional
from urllib.parse import parse_qsl, urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator

BROWSE_PATH = "/browse"


class PriceRange(NamedTuple):
    min: Optional[int]
    max: Optional[int]


UNBOUNDED = PriceRange(None, None)

# selector tokens carried in ?price=, in display order
PRICE_RANGES: dict[str, PriceRange] = {
    "under $500": PriceRange(None, 500),
    "$500 - $1,000": PriceRange(500, 1000),
    "$1,000 - $2,000": PriceRange(1000, 2000),
    "$2,000 - $4,000": PriceRange(2000, 4000),
    "$4,000+": PriceRange(4000, None),
}


def parse_price_range(token: Optional[str]) -> PriceRange:
    """Map a price token to its bounds; anything unknown is unbounded."""
    return PRICE_RANGES.get(token or "", UNBOUNDED)


def price_token_for(min_price: Optional[int], max_price: Optional[int]) -> Optional[str]:
    for token, rng in PRICE_RANGES.items():
        if rng == (min_price, max_price):
            return token
    return None


def parse_bound(value: Any) -> Optional[int]:
    """Integer price bound from user input. Non-numeric input means "no bound"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if math.isfinite(number) else None


class FilterCriteria(BaseModel):
    """One browse query. Empty strings and None bounds switch a filter off."""
    model_config = ConfigDict(populate_by_name=True)

    type: str = ""
    min_price: Optional[int] = Field(default=None, alias="minPrice")
    max_price: Optional[int] = Field(default=None, alias="maxPrice")
    location: str = ""
    search: str = ""

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def _lenient_bound(cls, v):
        return parse_bound(v)

    @field_validator("type", "location", "search", mode="before")
    @classmethod
    def _text(cls, v):
        return "" if v is None else str(v).strip()

    @property
    def is_empty(self) -> bool:
        return not (self.type or self.location or self.search) and \
            self.min_price is None and self.max_price is None


def clear_filters() -> FilterCriteria:
    return FilterCriteria()


# ---------- filtering ----------
def _field(listing: Any, name: str):
    if isinstance(listing, Mapping):
        return listing.get(name)
    return getattr(listing, name, None)


def _lower(value) -> str:
    return str(value).lower() if value is not None else ""


def _category_name(listing: Any) -> str:
    name = _field(listing, "bike_type")
    if name is None:
        category = _field(listing, "category")
        name = _field(category, "name") if category is not None else None
    return name or ""


def _price_at_least(listing, bound: int) -> bool:
    price = _field(listing, "price")
    return price is not None and price >= bound


def _price_at_most(listing, bound: int) -> bool:
    price = _field(listing, "price")
    return price is not None and price <= bound


def _search_hit(listing, needle: str) -> bool:
    return any(
        needle in _lower(v) for v in (
            _field(listing, "title"),
            _field(listing, "description"),
            _field(listing, "brand"),
            _category_name(listing),
        )
    )


def apply_filters(listings: Iterable[Any], criteria: FilterCriteria) -> List[Any]:
    """
    AND of: type, min price, max price, location, search. Keeps the input
    order (the catalog's newest-first); no relevance ranking.
    """
    filtered = list(listings)

    if criteria.type:
        filtered = [b for b in filtered if _category_name(b) == criteria.type]

    if criteria.min_price is not None:
        filtered = [b for b in filtered if _price_at_least(b, criteria.min_price)]

    if criteria.max_price is not None:
        filtered = [b for b in filtered if _price_at_most(b, criteria.max_price)]

    if criteria.location:
        needle = criteria.location.lower()
        filtered = [b for b in filtered if needle in _lower(_field(b, "location"))]

    if criteria.search:
        needle = criteria.search.lower()
        filtered = [b for b in filtered if _search_hit(b, needle)]

    return filtered


# ---------- query string ----------
def criteria_from_query(params: Mapping[str, str]) -> FilterCriteria:
    """Read ?search=&type=&price=&location= (explicit minPrice/maxPrice win over the token)."""
    bounds = parse_price_range(params.get("price"))
    min_raw = params.get("minPrice")
    max_raw = params.get("maxPrice")
    return FilterCriteria(
        search=params.get("search"),
        type=params.get("type"),
        location=params.get("location"),
        min_price=min_raw if min_raw not in (None, "") else bounds.min,
        max_price=max_raw if max_raw not in (None, "") else bounds.max,
    )


def criteria_to_query(criteria: FilterCriteria) -> str:
    pairs: list[tuple[str, str]] = []
    if criteria.search:
        pairs.append(("search", criteria.search))
    if criteria.type:
        pairs.append(("type", criteria.type))
    if criteria.min_price is not None or criteria.max_price is not None:
        token = price_token_for(criteria.min_price, criteria.max_price)
        if token:
            pairs.append(("price", token))
        else:
            if criteria.min_price is not None:
                pairs.append(("minPrice", str(criteria.min_price)))
            if criteria.max_price is not None:
                pairs.append(("maxPrice", str(criteria.max_price)))
    if criteria.location:
        pairs.append(("location", criteria.location))
    return urlencode(pairs)


def update_query(query: str, key: str, value: Any) -> str:
    """
    Set (non-empty value) or drop (empty value) one key in an existing query
    string, in place, keeping every other parameter.
    """
    pairs = parse_qsl((query or "").lstrip("?"), keep_blank_values=True)
    value = "" if value is None else str(value).strip()

    if key == "price":
        # a picked range replaces any explicit bounds
        pairs = [(k, v) for k, v in pairs if k not in ("minPrice", "maxPrice")]
    elif key in ("minPrice", "maxPrice") and any(k == "price" for k, _ in pairs):
        # editing one bound turns the token into explicit bounds first
        current = criteria_from_query(dict(pairs))
        pairs = [(k, v) for k, v in pairs if k not in ("price", "minPrice", "maxPrice")]
        if current.min_price is not None:
            pairs.append(("minPrice", str(current.min_price)))
        if current.max_price is not None:
            pairs.append(("maxPrice", str(current.max_price)))

    out: list[tuple[str, str]] = []
    placed = False
    for k, v in pairs:
        if k != key:
            out.append((k, v))
        elif value and not placed:
            out.append((k, value))
            placed = True
    if value and not placed:
        out.append((key, value))
    return urlencode(out)


def browse_url(query: str) -> str:
    return f"{BROWSE_PATH}?{query}" if query else BROWSE_PATH
