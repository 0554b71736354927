from .tables import (
    Base,
    metadata,
    Providers,
    Services,
    t_provider_services,
    AvailabilityRules,
    BlockedIntervals,
    Appointments,
    AppointmentLineItems,
    AppointmentModifications,
)

__all__ = [
    "Base",
    "metadata",
    "Providers",
    "Services",
    "t_provider_services",
    "AvailabilityRules",
    "BlockedIntervals",
    "Appointments",
    "AppointmentLineItems",
    "AppointmentModifications",
]
