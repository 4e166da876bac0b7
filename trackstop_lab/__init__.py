"""Track-and-Stop Lab: fixed-confidence best arm identification simulator."""

from trackstop_lab.allocation import ADAPTIVE, UNIFORM, compute_allocation, sample_arm
from trackstop_lab.arms import ArmState, best_arm
from trackstop_lab.config import SimulationConfig
from trackstop_lab.divergence import kl_bernoulli
from trackstop_lab.driver import SimulationDriver, SimulationState, SimulationStateError
from trackstop_lab.envs.bernoulli import BernoulliBandit
from trackstop_lab.glrt import glrt
from trackstop_lab.records import AllocationSnapshot, SimulationOutcome, StepResult
from trackstop_lab.stopping import StoppingRule, stopping_threshold

__all__ = [
    "ADAPTIVE",
    "UNIFORM",
    "AllocationSnapshot",
    "ArmState",
    "BernoulliBandit",
    "SimulationConfig",
    "SimulationDriver",
    "SimulationOutcome",
    "SimulationState",
    "SimulationStateError",
    "StepResult",
    "StoppingRule",
    "best_arm",
    "compute_allocation",
    "glrt",
    "kl_bernoulli",
    "sample_arm",
    "stopping_threshold",
]
