"""
Simulator
Owns the worker threads and the state they share: the immutable ROM and save
state, the resolved game profile, the warm-start cache, the trial budget and
the result tally.
"""

import logging
import os
import threading
import time
from typing import Dict, List, Optional, Union

import numpy as np

from battlescope import moves, profiles
from battlescope.cache import WarmStartCache
from battlescope.engine import Backend, Engine, HardwareModel, InvalidState, load_backend
from battlescope.errors import InvalidSaveState
from battlescope.profiles import Game, GameProfile
from battlescope.results import ResultAggregator, TrialBudget
from battlescope.trial import TrialLoop

logger = logging.getLogger(__name__)


class Simulator:
    """
    Estimates the battle AI's move distribution by replaying a save state

    Args:
        rom: ROM image
        save_state: save state taken before the AI picks its move
        trials: stop after recording this many trials; None runs until stop()
        backend: emulator backend, or a "module:attribute" path to one;
            None uses the BATTLESCOPE_BACKEND environment variable
        seed: seed for the per-worker random generators; None draws from
            the OS entropy pool
    """

    def __init__(self,
                 rom: bytes,
                 save_state: bytes,
                 trials: Optional[int] = None,
                 backend: Union[Backend, str, None] = None,
                 seed: Optional[int] = None):
        if trials is not None and trials < 0:
            raise ValueError(f"trials must be non-negative, got {trials}")

        if backend is None or isinstance(backend, str):
            backend = load_backend(backend)
        self.backend = backend

        self.rom = bytes(rom)
        self.save_state = bytes(save_state)

        try:
            self.model: HardwareModel = backend.model_for_snapshot(self.save_state)
        except InvalidState as e:
            raise InvalidSaveState() from e

        probe = backend.create(self.model)
        probe.load_rom(self.rom)
        try:
            probe.load_snapshot(self.save_state)
        except InvalidState as e:
            raise InvalidSaveState() from e

        self.profile: GameProfile = profiles.lookup(probe.rom_title())
        logger.debug("Recognized %s (%s hardware)", self.profile.display_name, self.model.value)

        self.cache = WarmStartCache(self.save_state)
        self.budget = TrialBudget(trials)
        self.aggregator = ResultAggregator()

        self._seed_sequence = np.random.SeedSequence(seed)
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    @property
    def game(self) -> Game:
        return self.profile.game

    @property
    def trials(self) -> Optional[int]:
        return self.budget.cap

    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def results(self) -> Dict[int, int]:
        """Current tally of decision code -> count"""
        return self.aggregator.results()

    def trials_recorded(self) -> int:
        return self.aggregator.total()

    def start(self, thread_count: Optional[int] = None) -> None:
        """Spawn worker threads; 0 or None uses every CPU"""
        if self.is_running():
            raise RuntimeError("Simulator is already running")

        if not thread_count:
            thread_count = os.cpu_count() or 1
        if thread_count < 0:
            raise ValueError(f"thread_count must be positive, got {thread_count}")

        self._stop.clear()
        self._threads = []

        seeds = self._seed_sequence.spawn(thread_count)
        for index, seed in enumerate(seeds):
            thread = threading.Thread(
                target=self._worker,
                args=(index, seed),
                name=f"battlescope-worker-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        logger.debug("Started %d worker threads", thread_count)

    def stop(self) -> None:
        """Signal every worker to stop and wait for them; no-op when idle"""
        if not self.is_running():
            return
        self._stop.set()
        for thread in self._threads:
            thread.join()
        logger.debug("All workers stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the workers exit on their own (budget exhausted)

        Returns:
            True if no worker is running any more
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            if deadline is None:
                thread.join()
            else:
                thread.join(max(0.0, deadline - time.monotonic()))
        return not self.is_running()

    def close(self) -> None:
        self.stop()

    def __enter__(self) -> "Simulator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def __del__(self):
        # Construction may have failed before the thread list existed
        if getattr(self, '_threads', None):
            self.stop()

    @staticmethod
    def move_name(code: int) -> str:
        return moves.label(code)

    def _build_engine(self) -> Engine:
        engine = self.backend.create(self.model)
        engine.load_rom(self.rom)
        engine.set_turbo(True)
        engine.set_memory_callbacks_enabled(True)
        return engine

    def _worker(self, index: int, seed: np.random.SeedSequence) -> None:
        logger.debug("Worker %d starting", index)
        try:
            loop = TrialLoop(
                engine=self._build_engine(),
                profile=self.profile,
                cache=self.cache,
                budget=self.budget,
                aggregator=self.aggregator,
                stop_event=self._stop,
                rng=np.random.default_rng(seed),
            )
            loop.run()
        except Exception:
            logger.exception("Worker %d failed", index)
            return
        logger.debug("Worker %d finished after %d trials (%d steps)",
                     index, loop.trials_completed, loop.steps)
