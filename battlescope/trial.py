"""
Trial loop
Each worker owns one engine and replays the battle over and over:

    RESTORE   load the shared warm-start snapshot
    SEARCHING snapshot before every step until the game first reads an RNG
              port, then publish the pre-read snapshot (first trial only)
    RUNNING   step with rapid-fire A presses, feeding random bytes to the
              RNG ports
    DECIDED   the AI wrote its move; hand it to the budget and the tally

A worker stops when the stop event is set (the trial in flight is dropped) or
when the budget refuses a finished trial.
"""

import logging
import threading
from typing import Optional

import numpy as np

from battlescope.cache import WarmStartCache
from battlescope.config import RAPID_FIRE_HELD, RAPID_FIRE_PERIOD
from battlescope.engine import Button, Engine, MemoryRegion
from battlescope.profiles import GameProfile
from battlescope.results import ResultAggregator, TrialBudget

logger = logging.getLogger(__name__)


class TrialHooks:
    """Per-trial memory hooks: randomize RNG reads, latch the AI's move"""

    def __init__(self, profile: GameProfile, rng: np.random.Generator):
        self.profile = profile
        self.rng = rng
        self.rng_hit = False
        self.decision = 0

    def read_memory(self, engine: Engine, address: int, original: int) -> int:
        if self.profile.is_rng_port(address):
            self.rng_hit = True
            return int(self.rng.integers(0, 256))
        return original

    def write_memory(self, engine: Engine, address: int, value: int) -> bool:
        if address != self.profile.decision_address or value == 0:
            return True
        if self.decision:
            # Already latched for this trial
            return True
        if self._signature_ok(engine):
            self.decision = value
        return True

    def _signature_ok(self, engine: Engine) -> bool:
        if self.profile.signature is None:
            return True
        pc = engine.registers().pc
        view = engine.direct_access(MemoryRegion.ROM)
        return self.profile.signature_matches(pc, view.data, view.bank)


class TrialLoop:
    """State machine driving one worker's engine"""

    def __init__(self,
                 engine: Engine,
                 profile: GameProfile,
                 cache: WarmStartCache,
                 budget: TrialBudget,
                 aggregator: ResultAggregator,
                 stop_event: threading.Event,
                 rng: Optional[np.random.Generator] = None):
        self.engine = engine
        self.profile = profile
        self.cache = cache
        self.budget = budget
        self.aggregator = aggregator
        self.stop_event = stop_event
        self.rng = rng if rng is not None else np.random.default_rng()

        # Set once this worker has found (or confirmed) the first RNG read
        self.converged = False
        self.trials_completed = 0
        self.steps = 0

    def run_trial(self) -> Optional[int]:
        """
        Replay from the warm-start snapshot until the AI decides

        Returns:
            The nonzero decision code, or None if stopped first
        """
        snapshot = self.cache.get()
        self.engine.load_snapshot(snapshot)

        hooks = TrialHooks(self.profile, self.rng)
        self.engine.set_callbacks(hooks)

        rapid_fire = 0
        odd_frame = False

        while True:
            if self.stop_event.is_set():
                return None

            if not self.converged:
                if hooks.rng_hit:
                    # The step we just ran read the RNG; the state before it is
                    # as far as every future trial can safely skip ahead
                    self.cache.publish(snapshot)
                    self.converged = True
                else:
                    snapshot = self.engine.create_snapshot()

            if odd_frame != self.engine.is_odd_frame():
                rapid_fire = (rapid_fire + 1) % RAPID_FIRE_PERIOD
                self.engine.set_button(Button.A, rapid_fire < RAPID_FIRE_HELD)
                odd_frame = not odd_frame

            if hooks.decision:
                return hooks.decision

            self.engine.step()
            self.steps += 1

    def run(self) -> None:
        """Run trials until stopped or out of budget"""
        while not self.stop_event.is_set():
            if self.budget.exhausted:
                logger.debug("Trial budget exhausted before starting a trial")
                return

            decision = self.run_trial()
            if decision is None:
                return

            if not self.budget.try_admit():
                logger.debug("Trial budget exhausted; discarding decision %d", decision)
                return

            self.aggregator.record(decision)
            self.trials_completed += 1
