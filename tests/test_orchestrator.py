import asyncio

import pytest

from src.chunking.schemas import TextChunk
from src.errors import NoValidContentGenerated
from src.generation.orchestrator import GenerationOrchestrator
from src.schemas import FlashcardItem, GenerationKind
from tests.fakes import FakeAPIError, quiz_item


def _marker(prompt: str) -> str:
    """The chunk text is the last line of the prompt."""
    return prompt.rsplit("\n", 1)[-1]


def _chunks(*texts: str) -> list[TextChunk]:
    return [TextChunk(chunk_index=i, text=t) for i, t in enumerate(texts)]


def test_bad_chunk_is_skipped_and_order_kept(make_generator):
    responses = {
        "c1": [quiz_item(1), quiz_item(2)],
        "c2": [quiz_item(3, options=["too", "few", "options"])],
        "c3": {"questions": [quiz_item(4)]},
    }
    generator = make_generator(lambda p: responses[_marker(p)])

    result = asyncio.run(
        GenerationOrchestrator(generator).generate(_chunks("c1", "c2", "c3"), GenerationKind.QUIZ)
    )

    assert [q.question for q in result.items] == ["Question 1?", "Question 2?", "Question 4?"]
    assert result.succeeded_chunks == [0, 2]
    assert result.failed_chunks == [1]
    assert result.total_chunks == 3
    assert result.partial is False


def test_generation_failure_is_isolated(make_generator, sleeps):
    def handler(prompt):
        if _marker(prompt) == "broken":
            raise FakeAPIError("rate limited", {"message": "429"})
        return [{"front": "F", "back": "B"}]

    generator = make_generator(handler, max_retries=2)
    result = asyncio.run(
        GenerationOrchestrator(generator).generate(["ok", "broken"], GenerationKind.FLASHCARD)
    )

    assert result.items == [FlashcardItem(front="F", back="B")]
    assert result.failed_chunks == [1]
    assert len(sleeps.delays) == 2


def test_all_chunks_failing_raises(make_generator):
    generator = make_generator(lambda p: [{"front": "", "back": ""}])
    orchestrator = GenerationOrchestrator(generator)

    with pytest.raises(NoValidContentGenerated):
        asyncio.run(orchestrator.generate(_chunks("a", "b"), GenerationKind.FLASHCARD))


def test_empty_batch_raises(make_generator):
    orchestrator = GenerationOrchestrator(make_generator(lambda p: []))
    with pytest.raises(NoValidContentGenerated):
        asyncio.run(orchestrator.generate([], GenerationKind.QUIZ))


def test_invalid_json_counts_as_failed_attempt(make_generator):
    generator = make_generator(lambda p: "not json" if _marker(p) == "x" else [quiz_item(1)])
    result = asyncio.run(
        GenerationOrchestrator(generator).generate(["x", "y"], GenerationKind.QUIZ)
    )
    assert result.failed_chunks == [0]
    assert len(result.items) == 1


def test_concurrent_results_keep_input_order(make_generator):
    in_flight = 0
    peak = 0

    async def handler(prompt):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        n = int(_marker(prompt))
        await asyncio.sleep(0.05 * (4 - n))      # later chunks finish first
        in_flight -= 1
        return [quiz_item(n)]

    orchestrator = GenerationOrchestrator(make_generator(handler), max_concurrency=2)
    result = asyncio.run(orchestrator.generate(["0", "1", "2", "3"], GenerationKind.QUIZ))

    assert [q.question for q in result.items] == [f"Question {n}?" for n in range(4)]
    assert peak == 2


def test_timeout_returns_partial_batch(make_generator):
    async def handler(prompt):
        if _marker(prompt) == "slow":
            await asyncio.sleep(5)
        return [quiz_item(1)]

    orchestrator = GenerationOrchestrator(make_generator(handler), max_concurrency=2)
    result = asyncio.run(orchestrator.generate(["fast", "slow"], GenerationKind.QUIZ, timeout=0.2))

    assert result.partial is True
    assert result.succeeded_chunks == [0]
    assert result.failed_chunks == [1]
    assert len(result.items) == 1


def test_records_use_model_field_names(make_generator):
    item = quiz_item(1)
    del item["explanation"]
    generator = make_generator(lambda p: [item])
    result = GenerationOrchestrator(generator).generate_sync(["c"], GenerationKind.QUIZ)

    assert result.to_records() == [
        {
            "question": "Question 1?",
            "options": ["A1", "B1", "C1", "D1"],
            "correctAnswer": "A1",
        }
    ]


def test_request_asks_for_json_object(make_generator):
    generator = make_generator(lambda p: [quiz_item(1)])
    asyncio.run(GenerationOrchestrator(generator).generate(["c"], GenerationKind.QUIZ))

    call = generator._client.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    assert call["messages"][0]["role"] == "system"
    assert generator.usage_summary()["total_tokens"] == 15


def test_skipped_chunks_are_written_to_error_log_once(make_generator, error_log):
    def handler(prompt):
        if _marker(prompt) == "down":
            raise FakeAPIError("service unavailable", {"message": "503"})
        if _marker(prompt) == "bad":
            return [{"front": "", "back": "B"}]
        return [{"front": "F", "back": "B"}]

    generator = make_generator(handler, max_retries=1)
    orchestrator = GenerationOrchestrator(generator, error_log=error_log)

    result = asyncio.run(orchestrator.generate(["ok", "bad", "down"], GenerationKind.FLASHCARD))

    assert result.failed_chunks == [1, 2]
    raw = error_log.path.read_text(encoding="utf-8")
    # One rejection from the validator plus one entry per failed attempt.
    assert raw.count('"timestamp"') == 3
    assert raw.count('"name": "ValidationRejected"') == 1
    assert '"name": "GenerationFailed"' not in raw
