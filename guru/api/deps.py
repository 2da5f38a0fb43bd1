"""Shared FastAPI dependencies — storage, scorers and progress injection.

Module-level singletons for each service. Route handlers access them via
FastAPI's Depends() system, never by importing the singletons directly.
The defaults below are the in-memory tier so the app answers requests even
before startup wiring runs; main._init_storage() and main._init_scorers()
replace them with the configured fallback chains and scorer pool.

Tier 2 service module: imports from hooks/* (Tier 2), hooks/interfaces
(Tier 1), recorder, progress, patterns, onboarding, scoring/* (Tier 2-3).

Usage:
    from guru.api.deps import get_progress_registry

    @router.get("/something")
    async def do_thing(registry: ProgressRegistry = Depends(get_progress_registry)):
        ...
"""

from fastapi import Depends

from guru.hooks.chain import FallbackProgressChain, FallbackSessionLog
from guru.hooks.interfaces import KeyValueStore, ProgressBackend, SessionLog
from guru.hooks.memory import InMemoryKeyValueStore
from guru.onboarding import OnboardingTutor
from guru.patterns import PatternTracker
from guru.progress import ProgressRegistry
from guru.recorder import SessionRecorder
from guru.scoring.bridge import ScorerBridge
from guru.scoring.pipeline import StrokePipeline

# ---------------------------------------------------------------------------
# Service singletons (the swap point)
# ---------------------------------------------------------------------------

_progress_backend: ProgressBackend = FallbackProgressChain([])
_session_log: SessionLog = FallbackSessionLog([])
_kv_store: KeyValueStore = InMemoryKeyValueStore()

# Set by configure_services(); rebuilt whenever storage is swapped.
_recorder: SessionRecorder | None = None
_progress_registry: ProgressRegistry | None = None
_pattern_trackers: dict[str, PatternTracker] = {}
_onboarding_tutors: dict[str, OnboardingTutor] = {}

# Scorer singletons, set by main._init_scorers() at startup
_scorer_bridge: ScorerBridge | None = None
_pipeline: StrokePipeline | None = None


def configure_services(
    progress_backend: ProgressBackend,
    session_log: SessionLog,
    kv_store: KeyValueStore,
) -> None:
    """Installs storage and rebuilds everything that holds a reference to it.

    Drops cached per-player stores, so call it at startup (or between tests),
    not while requests are in flight.
    """
    global _progress_backend, _session_log, _kv_store, _recorder, _progress_registry
    _progress_backend = progress_backend
    _session_log = session_log
    _kv_store = kv_store
    _recorder = SessionRecorder(session_log)
    _progress_registry = ProgressRegistry(progress_backend, _recorder)
    _pattern_trackers.clear()
    _onboarding_tutors.clear()


def configure_scorers(bridge: ScorerBridge) -> None:
    """Installs the scorer bridge and the pipeline built on it."""
    global _scorer_bridge, _pipeline
    _scorer_bridge = bridge
    _pipeline = StrokePipeline(bridge)


# ---------------------------------------------------------------------------
# Dependency providers
# ---------------------------------------------------------------------------


def get_kv_store() -> KeyValueStore:
    """Returns the key-value store singleton."""
    return _kv_store


def get_session_recorder() -> SessionRecorder:
    """Returns the session recorder, building it on first use."""
    if _recorder is None:
        configure_services(_progress_backend, _session_log, _kv_store)
    return _recorder


def get_progress_registry(
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> ProgressRegistry:
    """Returns the per-player progress store registry."""
    return _progress_registry


def get_scorer_bridge() -> ScorerBridge:
    """Returns the scorer bridge, with a default thread pool if startup didn't set one."""
    if _scorer_bridge is None:
        configure_scorers(ScorerBridge())
    return _scorer_bridge


def get_pipeline(bridge: ScorerBridge = Depends(get_scorer_bridge)) -> StrokePipeline:
    """Returns the stroke pipeline built on the scorer bridge."""
    return _pipeline


async def get_pattern_tracker(
    player_id: str,
    kv: KeyValueStore = Depends(get_kv_store),
) -> PatternTracker:
    """Returns the loaded gallery tracker for the player in the path."""
    tracker = _pattern_trackers.get(player_id)
    if tracker is None:
        tracker = PatternTracker(kv, player_id)
        _pattern_trackers[player_id] = tracker
    await tracker.load()
    return tracker


async def get_onboarding_tutor(
    player_id: str,
    kv: KeyValueStore = Depends(get_kv_store),
) -> OnboardingTutor:
    """Returns the loaded tutorial state for the player in the path."""
    tutor = _onboarding_tutors.get(player_id)
    if tutor is None:
        tutor = OnboardingTutor(kv, player_id)
        _onboarding_tutors[player_id] = tutor
    await tutor.load()
    return tutor
