from .common import FissionEvent
from .dynamic import (
    DynamicTransportConfig,
    EnergyGroup,
    Neutron,
    NeutronSimulation,
    SimulationClock,
    TransportFrame,
    run_dynamic,
)
from .static import Region, StaticTransportConfig, StaticTransportResult, Track, generate_tracks

__all__ = [
    "DynamicTransportConfig",
    "EnergyGroup",
    "FissionEvent",
    "Neutron",
    "NeutronSimulation",
    "Region",
    "SimulationClock",
    "StaticTransportConfig",
    "StaticTransportResult",
    "Track",
    "TransportFrame",
    "generate_tracks",
    "run_dynamic",
]
