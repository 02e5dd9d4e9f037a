from engines.artifacts import ArtifactSource, FileArtifactSource, HttpArtifactSource
from engines.session import SessionStore
from engines.crossref import CrossReferenceResolver
from engines.playback import (
    AsyncioScheduler,
    NarrationProvider,
    NarrationSettings,
    PlaybackEngine,
    PlaybackState,
    QueueItem,
    Scheduler,
    Utterance,
    Voice,
    choose_voice,
)
from engines.study import StudySession

__all__ = [
    "ArtifactSource",
    "FileArtifactSource",
    "HttpArtifactSource",
    "SessionStore",
    "CrossReferenceResolver",
    "AsyncioScheduler",
    "NarrationProvider",
    "NarrationSettings",
    "PlaybackEngine",
    "PlaybackState",
    "QueueItem",
    "Scheduler",
    "Utterance",
    "Voice",
    "choose_voice",
    "StudySession",
]
