"""Route, stop and progression models."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from pybustrack._constants import UNKNOWN_PLACE, UNKNOWN_ROUTE
from pybustrack.models._base import BusTrackBaseModel


class Stop(BusTrackBaseModel):
    stop_id: str
    name: str = Field(default="", validation_alias=AliasChoices("stop_name", "name"))
    latitude: float
    longitude: float
    active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "active"))


class Route(BusTrackBaseModel):
    """A route as stored in ``bus_routes``."""

    route_id: str
    name: str = Field(default="", validation_alias=AliasChoices("route_name", "name"))
    origin: str = Field(default="", validation_alias=AliasChoices("source", "origin"))
    destination: str = ""
    stop_sequence: tuple[str, ...] = ()
    distance_km: float | None = Field(default=None, validation_alias=AliasChoices("distance", "distance_km"))
    estimated_minutes: float | None = Field(
        default=None,
        validation_alias=AliasChoices("estimated_time", "estimated_minutes"),
    )

    @field_validator("stop_sequence", mode="before")
    @classmethod
    def _coerce_sequence(cls, value: object) -> object:
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        return value


class RouteSummary(BaseModel):
    """Display line for a route: endpoints, stop count, length and duration."""

    model_config = ConfigDict(frozen=True)

    name: str
    origin: str
    destination: str
    stop_count: int
    distance_km: float | None = None
    estimated_minutes: float | None = None


class RouteView(BaseModel):
    """A route with its stop sequence resolved to active stops, in route order."""

    model_config = ConfigDict(frozen=True)

    route: Route
    stops: tuple[Stop, ...] = ()

    def summary(self) -> RouteSummary:
        route = self.route
        return RouteSummary(
            name=route.name or UNKNOWN_ROUTE,
            origin=route.origin or UNKNOWN_PLACE,
            destination=route.destination or UNKNOWN_PLACE,
            stop_count=len(self.stops),
            distance_km=route.distance_km,
            estimated_minutes=route.estimated_minutes,
        )

    @classmethod
    def resolve(cls, route: Route, stops: Iterable[Stop]) -> RouteView:
        """Order *stops* by the route's stop sequence, dropping inactive or unknown ones.

        The storage collaborator returns stops in no particular order.
        """
        by_id = {stop.stop_id: stop for stop in stops if stop.active}
        ordered = tuple(by_id[stop_id] for stop_id in route.stop_sequence if stop_id in by_id)
        return cls(route=route, stops=ordered)


class ProgressionCursor(BaseModel):
    """The stop currently considered "next" along a route view.

    ``current_stop_index`` is ``None`` exactly when the route has no stops.
    """

    model_config = ConfigDict(frozen=True)

    route_view: RouteView
    current_stop_index: int | None = 0

    @model_validator(mode="after")
    def _check_index(self) -> ProgressionCursor:
        count = len(self.route_view.stops)
        if count == 0:
            object.__setattr__(self, "current_stop_index", None)
            return self
        index = self.current_stop_index
        if index is None or not 0 <= index < count:
            raise ValueError(f"current_stop_index {index} out of range for {count} stops")
        return self

    @classmethod
    def start(cls, route_view: RouteView) -> ProgressionCursor:
        return cls(route_view=route_view, current_stop_index=0 if route_view.stops else None)

    @property
    def next_stop(self) -> Stop | None:
        if self.current_stop_index is None:
            return None
        return self.route_view.stops[self.current_stop_index]

    def advanced(self) -> ProgressionCursor:
        """Cursor moved to the following stop, wrapping after the last one."""
        if self.current_stop_index is None:
            return self
        count = len(self.route_view.stops)
        return ProgressionCursor(route_view=self.route_view, current_stop_index=(self.current_stop_index + 1) % count)
