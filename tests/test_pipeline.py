import asyncio

import pytest

from src.config import PipelineConfig
from src.errors import UnsupportedFormat
from src.schemas import GenerationKind, RawDocument
from src.serving.pipeline import StudyPipeline, load_documents


@pytest.fixture
def config(tmp_path) -> PipelineConfig:
    cfg = PipelineConfig()
    cfg.chunking.max_tokens = 40
    cfg.logging.error_log = str(tmp_path / "error.log")
    return cfg


def test_run_extracts_chunks_and_generates(real_tokenizer, config, make_generator):
    seen: list[str] = []

    def handler(prompt):
        seen.append(prompt)
        return {"flashcards": [{"front": f"card {len(seen)}", "back": "answer"}]}

    pipeline = StudyPipeline(config, generator=make_generator(handler))
    docs = [
        RawDocument.from_file_name("a.txt", ("Osmosis moves water across membranes. " * 12).encode()),
        RawDocument.from_file_name("b.txt", b"Diffusion needs no energy."),
    ]

    result = asyncio.run(pipeline.run(docs, GenerationKind.FLASHCARD))

    assert result.total_chunks == len(seen) > 1
    assert [c.front for c in result.items] == [f"card {i}" for i in range(1, len(seen) + 1)]
    assert "Diffusion needs no energy." in seen[-1]


def test_prepare_propagates_extraction_errors(real_tokenizer, config):
    pipeline = StudyPipeline(config)
    with pytest.raises(UnsupportedFormat):
        pipeline.prepare([RawDocument.from_file_name("slides.pptx", b"x")])


def test_load_documents_types_by_extension(tmp_path):
    path = tmp_path / "Notes.TXT"
    path.write_bytes(b"hello")

    (doc,) = load_documents([path])

    assert doc.file_type == "txt"
    assert doc.file_name == "Notes.TXT"
    assert doc.data == b"hello"
