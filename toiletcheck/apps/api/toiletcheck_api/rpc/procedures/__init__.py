"""RPC procedures. Importing this package registers every router."""

from toiletcheck_api.rpc.procedures import (  # noqa: F401
    auth,
    buildings,
    inspections,
    locations,
    organizations,
    stats,
    subscriptions,
    templates,
    users,
)
