"""Core data models for AVA Watcher."""

from __future__ import annotations

import datetime as dt
import enum
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .dates import format_ava_date, format_short_date, parse_ava_date
from .duration import pretty_duration


class FurnishStatus(str, enum.Enum):
    """Furnishing options advertised for a unit."""

    UNFURNISHED = "Unfurnished"
    ON_DEMAND = "OnDemand"
    FURNISHED = "Designated"


@dataclass(frozen=True)
class FloorPlan:
    name: str
    low_resolution: str
    high_resolution: str

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "FloorPlan":
        return cls(
            name=data["name"],
            low_resolution=data["lowResolution"],
            high_resolution=data["highResolution"],
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "lowResolution": self.low_resolution,
            "highResolution": self.high_resolution,
        }


@dataclass(frozen=True)
class VirtualTour:
    space: str
    is_actual_unit: bool

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "VirtualTour":
        return cls(space=data["space"], is_actual_unit=bool(data["isActualUnit"]))

    def to_api(self) -> Dict[str, Any]:
        return {"space": self.space, "isActualUnit": self.is_actual_unit}


@dataclass(frozen=True)
class Price:
    price: float
    net_effective_price: float

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Price":
        return cls(
            price=float(data["price"]),
            net_effective_price=float(data["netEffectivePrice"]),
        )

    def to_api(self) -> Dict[str, Any]:
        return {"price": self.price, "netEffectivePrice": self.net_effective_price}


@dataclass(frozen=True)
class PricesForMoveInDate:
    """Lease-term prices offered for a particular move-in date."""

    move_in_date: dt.datetime
    prices_per_terms: Tuple[Tuple[int, Price], ...]

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "PricesForMoveInDate":
        terms = sorted(
            ((int(term), Price.from_api(price))
             for term, price in (data.get("pricesPerTerms") or {}).items()),
            key=lambda item: item[0],
        )
        return cls(
            move_in_date=parse_ava_date(data["moveInDate"]),
            prices_per_terms=tuple(terms),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "moveInDate": format_ava_date(self.move_in_date),
            "pricesPerTerms": {
                str(term): price.to_api() for term, price in self.prices_per_terms
            },
        }


@dataclass(frozen=True)
class Rent:
    applied_discount: float
    prices_per_movein_date: Tuple[PricesForMoveInDate, ...]

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Rent":
        return cls(
            applied_discount=float(data.get("appliedDiscount") or 0.0),
            prices_per_movein_date=tuple(
                PricesForMoveInDate.from_api(item)
                for item in data.get("pricesPerMoveinDate") or []
            ),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "appliedDiscount": self.applied_discount,
            "pricesPerMoveinDate": [
                item.to_api() for item in self.prices_per_movein_date
            ],
        }


@dataclass(frozen=True)
class LowestRent:
    """Cheapest advertised price and the move-in date/term it applies to."""

    date: dt.datetime
    # Upstream sends the term length as a string.
    term_length: str
    price: Price

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "LowestRent":
        return cls(
            date=parse_ava_date(data["date"]),
            term_length=str(data["termLength"]),
            price=Price.from_api(data),
        )

    def to_api(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "date": format_ava_date(self.date),
            "termLength": self.term_length,
        }
        payload.update(self.price.to_api())
        return payload


@dataclass(frozen=True)
class ApplicablePromotion:
    promotion_id: str
    start_date: dt.datetime
    end_date: Optional[dt.datetime]
    terms: Tuple[int, ...]

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ApplicablePromotion":
        end_date = data.get("endDate")
        return cls(
            promotion_id=str(data["promotionId"]),
            start_date=parse_ava_date(data["startDate"]),
            end_date=parse_ava_date(end_date) if end_date else None,
            terms=tuple(int(term) for term in data.get("terms") or []),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "promotionId": self.promotion_id,
            "startDate": format_ava_date(self.start_date),
            "endDate": format_ava_date(self.end_date) if self.end_date else None,
            "terms": list(self.terms),
        }


KNOWN_UNIT_KEYS = (
    "unitId",
    "name",
    "furnishStatus",
    "floorPlan",
    "virtualTour",
    "bedroom",
    "bathroom",
    "squareFeet",
    "availableDate",
    "unitRentPrice",
    "lowestPricePerMoveInDate",
    "promotions",
)


@dataclass(frozen=True)
class UnitSnapshot:
    """One rental unit as advertised on the listing page at one point in time.

    Attributes the watcher does not model are kept, in upstream order, in
    ``extra`` so that they take part in equality and survive a save/load.
    """

    unit_id: str
    number: str
    furnish_status: FurnishStatus
    floor_plan: FloorPlan
    virtual_tour: Optional[VirtualTour]
    bedroom: int
    bathroom: int
    square_feet: float
    available_date: dt.datetime
    rent: Rent
    lowest_rent: LowestRent
    promotions: Tuple[ApplicablePromotion, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "UnitSnapshot":
        """Build a snapshot from one entry of the upstream ``units`` array."""
        virtual_tour = data.get("virtualTour")
        return cls(
            unit_id=str(data["unitId"]),
            number=str(data["name"]),
            furnish_status=FurnishStatus(data["furnishStatus"]),
            floor_plan=FloorPlan.from_api(data["floorPlan"]),
            virtual_tour=VirtualTour.from_api(virtual_tour) if virtual_tour else None,
            bedroom=int(data["bedroom"]),
            bathroom=int(data["bathroom"]),
            square_feet=float(data["squareFeet"]),
            available_date=parse_ava_date(data["availableDate"]),
            rent=Rent.from_api(data["unitRentPrice"]),
            lowest_rent=LowestRent.from_api(data["lowestPricePerMoveInDate"]),
            promotions=tuple(
                ApplicablePromotion.from_api(item)
                for item in data.get("promotions") or []
            ),
            extra={
                key: value for key, value in data.items() if key not in KNOWN_UNIT_KEYS
            },
        )

    def to_api(self) -> Dict[str, Any]:
        """Return the upstream-shaped mapping for this snapshot."""
        payload: Dict[str, Any] = {
            "unitId": self.unit_id,
            "name": self.number,
            "furnishStatus": self.furnish_status.value,
            "floorPlan": self.floor_plan.to_api(),
            "virtualTour": self.virtual_tour.to_api() if self.virtual_tour else None,
            "bedroom": self.bedroom,
            "bathroom": self.bathroom,
            "squareFeet": self.square_feet,
            "availableDate": format_ava_date(self.available_date),
            "unitRentPrice": self.rent.to_api(),
            "lowestPricePerMoveInDate": self.lowest_rent.to_api(),
            "promotions": [promotion.to_api() for promotion in self.promotions],
        }
        payload.update(self.extra)
        return payload

    def to_json(self) -> str:
        """Serialized form used for persistence and textual diffs."""
        return json.dumps(self.to_api(), indent=2, ensure_ascii=False)

    def differs_from(self, other: "UnitSnapshot") -> bool:
        """Structural inequality that also tells ``true`` from ``1`` in ``extra``."""
        return self != other or _canonical(self.extra) != _canonical(other.extra)

    @property
    def price(self) -> float:
        return self.lowest_rent.price.price

    def meets_qualifications(
        self,
        bedrooms: Optional[int] = 2,
        allow_furnished: bool = False,
    ) -> bool:
        """Return True when the unit matches the configured search criteria."""
        if not allow_furnished and self.furnish_status is FurnishStatus.FURNISHED:
            return False
        if bedrooms is not None and self.bedroom != bedrooms:
            return False
        return True

    def display(self) -> str:
        furnished = ", furnished" if self.furnish_status is FurnishStatus.FURNISHED else ""
        virtual_tour = (
            ", virtual tour"
            if self.virtual_tour is not None and self.virtual_tour.is_actual_unit
            else ""
        )
        return (
            f"Apartment {self.number} "
            f"({self.bedroom} bed {self.bathroom} bath, "
            f"${format_number(self.price)}, "
            f"{format_number(self.square_feet)}sq/ft, "
            f"avail. {format_short_date(self.available_date)}, "
            f"plan {self.floor_plan.name}"
            f"{furnished}{virtual_tour})"
        )

    def __str__(self) -> str:
        return self.display()


def format_number(value: float) -> str:
    """Render whole floats without a trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


@dataclass
class TrackedUnit:
    """Persisted lifecycle state for one unit identifier."""

    current: UnitSnapshot
    first_seen: dt.datetime
    unlisted_at: Optional[dt.datetime] = None

    @property
    def unit_id(self) -> str:
        return self.current.unit_id

    @property
    def active(self) -> bool:
        return self.unlisted_at is None

    def tracked_duration(self) -> Optional[dt.timedelta]:
        if self.unlisted_at is None:
            return None
        return self.unlisted_at - self.first_seen

    def display(self) -> str:
        duration = self.tracked_duration()
        if duration is None:
            return self.current.display()
        return f"Unlisted after {pretty_duration(duration)}: {self.current.display()}"

    def __str__(self) -> str:
        return self.display()


@dataclass
class Store:
    """Active units keyed by identifier plus the archive of unlisted units.

    The archive keeps every unlisted record for an identifier, oldest first.
    """

    active: Dict[str, TrackedUnit] = field(default_factory=dict)
    unlisted: Dict[str, List[TrackedUnit]] = field(default_factory=dict)

    def archive(self, unit: TrackedUnit) -> None:
        self.unlisted.setdefault(unit.unit_id, []).append(unit)

    def latest_unlisted(self, unit_id: str) -> Optional[TrackedUnit]:
        records = self.unlisted.get(unit_id)
        return records[-1] if records else None

    def unlisted_records(self) -> List[TrackedUnit]:
        return [record for records in self.unlisted.values() for record in records]

    def copy(self) -> "Store":
        return Store(
            active=dict(self.active),
            unlisted={unit_id: list(records) for unit_id, records in self.unlisted.items()},
        )


@dataclass(frozen=True)
class UnitChange:
    """Old and new snapshot of a unit whose attributes changed."""

    old: UnitSnapshot
    new: UnitSnapshot

    @property
    def unit_id(self) -> str:
        return self.new.unit_id


@dataclass
class DiffResult:
    """Holds the result of reconciling a snapshot against tracked state."""

    added: List[UnitSnapshot] = field(default_factory=list)
    removed: List[TrackedUnit] = field(default_factory=list)
    changed: List[UnitChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


@dataclass(frozen=True)
class NewListing:
    unit: UnitSnapshot


@dataclass(frozen=True)
class Unlisted:
    unit: TrackedUnit


@dataclass(frozen=True)
class UnitChanged:
    change: UnitChange
    diff: str


NotificationEvent = Union[NewListing, Unlisted, UnitChanged]


class TickState(str, enum.Enum):
    """Phases of one monitoring cycle."""

    IDLE = "idle"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    REPORTING = "reporting"
    PERSISTING = "persisting"


@dataclass
class RunSummary:
    """Aggregated result returned by a monitoring cycle."""

    executed_at: dt.datetime
    diff: DiffResult
    rendered_diffs: Dict[str, str] = field(default_factory=dict)
    persisted: bool = False



def _canonical(value: Any) -> str:
    # json keeps bool, int and float apart where == does not
    return json.dumps(value, sort_keys=True, ensure_ascii=False)
