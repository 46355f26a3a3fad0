"""Unit tests for the cache-aware explanation service (in-memory store, fake generator)."""
import pytest

from studynotes.exceptions import GeneratorFailure, InvalidInput, StoreUnavailable
from studynotes.repositories.explanation_repository import ExplanationRecord, ExplanationRepository
from studynotes.services.classifiers import Difficulty
from studynotes.services.explanation_service import (
    FALLBACK_EXPLANATION,
    ExplanationService,
    ExplanationSource,
)
from studynotes.services.fingerprint import fingerprint_text

pytestmark = pytest.mark.unit


class MemoryStore:
    def __init__(self):
        self.records: list[ExplanationRecord] = []
        self.gets = 0
        self.puts = 0
        self.fail_get = False
        self.fail_put = False

    def get(self, user_id, fingerprint):
        self.gets += 1
        if self.fail_get:
            raise StoreUnavailable("database unreachable")
        matches = [r for r in self.records if r.user_id == user_id and r.fingerprint == fingerprint]
        return max(matches, key=lambda r: r.created_at) if matches else None

    def put(self, record):
        self.puts += 1
        if self.fail_put:
            raise StoreUnavailable("database unreachable")
        self.records.append(record)
        return record

    def list_by_user(self, user_id, limit=None):
        rows = sorted((r for r in self.records if r.user_id == user_id), key=lambda r: r.created_at, reverse=True)
        return rows[:limit] if limit is not None else rows


@pytest.fixture
def store():
    return MemoryStore()


def test_first_call_generates_and_stores(store, generator):
    service = ExplanationService(store, generator)

    result = service.explain("user1", "  Explica la Derivada de x^2  ")

    assert generator.calls == [("  Explica la Derivada de x^2  ", None)]
    assert result.explanation == "La derivada es 2x"
    assert result.concepts == ["derivada"]
    assert result.difficulty == Difficulty.ADVANCED
    assert result.source == ExplanationSource.GENERATED
    assert len(store.records) == 1
    saved = store.records[0]
    assert saved.user_id == "user1"
    assert saved.fingerprint == fingerprint_text("explica la derivada de x^2")
    assert saved.original_text == "  Explica la Derivada de x^2  "
    assert saved.explanation == "La derivada es 2x"


def test_second_call_is_served_from_cache(store, generator):
    service = ExplanationService(store, generator)
    first = service.explain("user1", "  Explica la Derivada de x^2  ")
    second = service.explain("user1", "  Explica la Derivada de x^2  ")

    assert len(generator.calls) == 1
    assert second.explanation == first.explanation
    assert second.source == ExplanationSource.CACHED
    assert second.concepts == ["derivada"]
    assert second.difficulty == Difficulty.ADVANCED
    assert len(store.records) == 1


def test_normalized_variant_hits_cache(store, generator):
    service = ExplanationService(store, generator)
    service.explain("user1", "Explica la derivada de x^2")
    result = service.explain("user1", "EXPLICA LA DERIVADA DE X^2\n")

    assert len(generator.calls) == 1
    assert result.source == ExplanationSource.CACHED


def test_cache_is_per_user(store, generator):
    service = ExplanationService(store, generator)
    service.explain("user1", "Explica la derivada")
    service.explain("user2", "Explica la derivada")

    assert len(generator.calls) == 2
    assert {r.user_id for r in store.records} == {"user1", "user2"}


def test_subject_hint_passed_to_generator(store, generator):
    ExplanationService(store, generator).explain("user1", "La fuerza neta", subject="Física")
    assert generator.calls == [("La fuerza neta", "Física")]


@pytest.mark.parametrize("user_id", [None, ""])
def test_anonymous_never_touches_store(store, generator, user_id):
    service = ExplanationService(store, generator)
    for _ in range(3):
        result = service.explain(user_id, "Explica la derivada")
        assert result.source == ExplanationSource.GENERATED

    assert store.gets == 0
    assert store.puts == 0
    assert len(generator.calls) == 3


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_text_rejected_before_io(store, generator, text):
    service = ExplanationService(store, generator)
    with pytest.raises(InvalidInput):
        service.explain("user1", text)
    assert store.gets == 0
    assert generator.calls == []


def test_store_read_failure_falls_through_to_generator(store, generator):
    store.fail_get = True
    result = ExplanationService(store, generator).explain("user1", "Explica la derivada")

    assert result.explanation == "La derivada es 2x"
    assert result.source == ExplanationSource.GENERATED
    assert len(generator.calls) == 1
    assert store.puts == 0


def test_store_write_failure_still_returns_answer(store, generator):
    store.fail_put = True
    result = ExplanationService(store, generator).explain("user1", "Explica la derivada")

    assert result.explanation == "La derivada es 2x"
    assert store.puts == 1
    assert store.records == []


def test_generator_failure_returns_fallback(store, failing_generator):
    result = ExplanationService(store, failing_generator).explain("user1", "Calcula la integral de la función")

    assert result.explanation == FALLBACK_EXPLANATION
    assert result.difficulty == Difficulty.INTERMEDIATE
    assert result.concepts == ["función", "integral"]
    assert result.source == ExplanationSource.FALLBACK
    assert store.records == []


def test_unexpected_generator_error_returns_fallback(store, generator):
    generator.error = RuntimeError("boom")
    result = ExplanationService(store, generator).explain("user1", "Hola")
    assert result.source == ExplanationSource.FALLBACK
    assert result.concepts == []


def test_empty_generator_output_is_a_failure(store, generator):
    generator.reply = "   "
    result = ExplanationService(store, generator).explain("user1", "Explica la derivada")

    assert result.explanation == FALLBACK_EXPLANATION
    assert store.records == []


def test_generator_disabled_returns_fallback(store):
    result = ExplanationService(store, None).explain("user1", "Explica la derivada")

    assert result.source == ExplanationSource.FALLBACK
    assert result.explanation == FALLBACK_EXPLANATION
    assert store.gets == 1
    assert store.records == []


def test_fallback_is_not_cached_so_next_call_retries(store, generator):
    service = ExplanationService(store, generator)
    generator.error = GeneratorFailure("unavailable")
    assert service.explain("user1", "Explica la derivada").source == ExplanationSource.FALLBACK

    generator.error = None
    result = service.explain("user1", "Explica la derivada")
    assert result.source == ExplanationSource.GENERATED
    assert len(generator.calls) == 2


def test_math_explanation_cached_verbatim(store, generator):
    generator.reply = "La derivada de x^2 - 3x es 2x - 3"
    result = ExplanationService(store, generator).explain("user1", "Deriva x^2 - 3x")

    assert result.explanation == "La derivada de x^2 - 3x es 2x - 3"
    assert store.records[0].explanation == "La derivada de x^2 - 3x es 2x - 3"


def test_generated_markdown_is_normalized_before_caching(store, generator):
    generator.reply = "Conceptos clave: - Derivada - Límite"
    result = ExplanationService(store, generator).explain("user1", "Explica la derivada")

    assert result.explanation == "Conceptos clave:\n\n- Derivada\n- Límite"
    assert store.records[0].explanation == result.explanation


def test_history_delegates_to_store(store, generator):
    service = ExplanationService(store, generator)
    service.explain("user1", "uno")
    service.explain("user1", "dos")
    assert {r.original_text for r in service.history("user1")} == {"uno", "dos"}


def test_with_sqlalchemy_store(db, generator):
    service = ExplanationService(ExplanationRepository(db), generator)
    service.explain("user1", "  Explica la Derivada de x^2  ")
    again = service.explain("user1", "explica la derivada de x^2")

    assert again.source == ExplanationSource.CACHED
    assert len(generator.calls) == 1
    assert len(service.history("user1")) == 1
