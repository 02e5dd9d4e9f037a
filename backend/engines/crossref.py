"""Cross-Reference Resolver

Answers "which phrases in the active module use dictionary form W".
Results are scoped to the active module only and follow the module's
native phrase order.
"""
from core.errors import no_active_module, raise_error
from core.logging import session_logger
from engines.session import SessionStore
from models.phrasebook import Phrase

log = session_logger()


class CrossReferenceResolver:
    """Index-backed lookup over the Session Store's active module."""

    __slots__ = ("_store",)

    def __init__(self, store: SessionStore):
        self._store = store

    def resolve(self, dictionary_form: str) -> list[Phrase]:
        module = self._store.module
        if module is None:
            raise_error(no_active_module("cross_reference", origin="crossref").error)

        phrase_ids = {
            location.phrase_id
            for location in self._store.search_index.lookup(dictionary_form)
            if location.module_id == module.id
        }
        matches = [phrase for phrase in module.phrases if phrase.id in phrase_ids]
        log.debug("cross_reference_resolved", form=dictionary_form, module_id=module.id, matches=len(matches))
        return matches
