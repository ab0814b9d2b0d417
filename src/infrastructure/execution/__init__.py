from src.infrastructure.execution.http import HttpActionExecutor
from src.infrastructure.execution.simulated import SimulatedActionExecutor

__all__ = [
    "HttpActionExecutor",
    "SimulatedActionExecutor",
]
