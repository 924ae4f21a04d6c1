"""Internal constants shared across the library."""

#: Mean Earth radius in metres.
EARTH_RADIUS_M = 6_371_000.0

USER_AGENT = "pybustrack"

REPORT_INTERVAL_S = 10.0
FLEET_INTERVAL_S = 30.0
POSITION_INTERVAL_S = 10.0

GEOLOCATION_TIMEOUT_S = 15.0
GEOLOCATION_MAX_AGE_S = 30.0

#: Distance at which a vehicle is considered to have reached its target stop.
ADVANCE_THRESHOLD_M = 50.0

UNKNOWN_ROUTE = "Unknown Route"
UNKNOWN_PLACE = "Unknown"

# ------------------------------------------------------------------
# Storage tables / RPC names
# ------------------------------------------------------------------

TABLE_DRIVERS = "drivers"
TABLE_BUSES = "buses"
TABLE_ROUTES = "bus_routes"
TABLE_STOPS = "bus_stops"
TABLE_LOCATIONS = "bus_locations"
RPC_CLAIM_BUS = "rpc/claim_bus"

# Status values returned by the claim RPC.
CLAIM_OK = "ok"
CLAIM_NOT_FOUND = "not_found"
CLAIM_INACTIVE = "inactive"
CLAIM_CLAIMED = "claimed"
