"""
ledgersim Scenario Package

Multi-transaction scenario driver.
"""
from .engine import Scenario, ScenarioEngine, ScenarioState

__all__ = [
    "Scenario",
    "ScenarioEngine",
    "ScenarioState",
]
