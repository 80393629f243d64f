"""
Tests for document assembly.

The rasterizer and OCR engine are replaced with fakes so page order,
failure handling and confidence flagging can be checked without Poppler or
Tesseract.
"""

import asyncio
import io
import threading

import numpy as np
import pytest


class FakeSource:
    """Source with fixed per-page raster sizes (pixels at scale 3)."""

    def __init__(self, pixel_sizes, name="fake.pdf"):
        self.pixel_sizes = pixel_sizes
        self.name = name

    @property
    def page_count(self):
        return len(self.pixel_sizes)

    def page_text_items(self, page_index):
        return []

    def page_size(self, page_index, scale=1.0):
        w, h = self.pixel_sizes[page_index]
        return w / 3.0, h / 3.0


class FakeRasterizer:
    """Records every page it renders and the rasters it hands out."""

    def __init__(self, fail_on_page=None):
        self.fail_on_page = fail_on_page
        self.calls = []
        self.rasters = []

    def __call__(self, source, page_index, scale, poppler_path=None):
        from pdf_recon.utils.errors import PageRenderFailed
        from pdf_recon.utils.rasterizer import RasterImage

        self.calls.append(page_index)
        if self.fail_on_page == page_index + 1:
            raise PageRenderFailed(page_index + 1, "renderer crashed")

        w, h = source.pixel_sizes[page_index]
        raster = RasterImage.from_array(
            np.ones((h, w, 3), dtype=np.uint8) * 255, scale=scale, page_number=page_index + 1
        )
        self.rasters.append(raster)
        return raster


class FakeEngine:
    """Returns one word per page with a scripted confidence."""

    def __init__(self, confidences, fail_on_page=None):
        self.confidences = confidences
        self.fail_on_page = fail_on_page
        self.calls = 0

    def recognize(self, image):
        from pdf_recon.utils.ocr_text import PageRecognitionResult, Word

        self.calls += 1
        page_number = self.calls
        if self.fail_on_page == page_number:
            raise RuntimeError("engine crashed")

        h, w = image.shape[:2]
        conf = self.confidences[page_number - 1]
        return PageRecognitionResult(
            full_text=f"Page{page_number}",
            words=[Word(f"Page{page_number}", (30, 30, 90, 60), conf)],
            confidence=conf,
            pixel_width=w,
            pixel_height=h
        )


def make_assembler(confidences, rasterizer=None, engine_fail=None, **kwargs):
    from pdf_recon.utils.assembler import DocumentAssembler
    from pdf_recon.utils.ocr_text import TextOCR

    engine = FakeEngine(confidences, fail_on_page=engine_fail)
    assembler = DocumentAssembler(
        raster_scale=3.0,
        text_ocr=TextOCR(engine=engine),
        rasterizer=rasterizer or FakeRasterizer(),
        **kwargs
    )
    return assembler, engine


class TestLowConfidence:
    """Test low-confidence flagging."""

    def test_flagged_pages_are_one_indexed(self):
        from pdf_recon.utils.assembler import find_low_confidence_pages

        assert find_low_confidence_pages([95, 60, 72, 40], threshold=70) == [2, 4]

    def test_threshold_is_strict(self):
        from pdf_recon.utils.assembler import find_low_confidence_pages

        assert find_low_confidence_pages([70.0, 69.99], threshold=70) == [2]

    def test_assembly_reports_low_pages(self):
        source = FakeSource([(300, 600)] * 4)
        assembler, _ = make_assembler([95, 60, 72, 40])

        result = assembler.assemble(source)

        assert result.per_page_confidence == [95, 60, 72, 40]
        assert result.low_confidence_pages == [2, 4]

    def test_sidecar_always_lists_low_pages(self):
        source = FakeSource([(300, 600)])
        assembler, _ = make_assembler([99])

        sidecar = assembler.assemble(source).to_dict()

        assert sidecar["low_confidence_pages"] == []
        assert sidecar["per_page_confidence"] == [99]
        assert sidecar["page_count"] == 1
        assert sidecar["words_placed"] == 1


class TestAssembly:
    """Test page ordering and output structure."""

    def test_page_order_and_sizes(self):
        import pdfplumber

        sizes = [(300, 600), (450, 300), (600, 900)]
        source = FakeSource(sizes)
        rasterizer = FakeRasterizer()
        assembler, _ = make_assembler([90, 91, 92], rasterizer=rasterizer)

        result = assembler.assemble(source)

        assert rasterizer.calls == [0, 1, 2]
        assert [p.page_number for p in result.pages] == [1, 2, 3]

        with pdfplumber.open(io.BytesIO(result.pdf_bytes)) as pdf:
            assert len(pdf.pages) == 3
            for page, (w, h), number in zip(pdf.pages, sizes, range(1, 4)):
                assert float(page.width) == pytest.approx(w / 3.0)
                assert float(page.height) == pytest.approx(h / 3.0)
                assert [word["text"] for word in page.extract_words()] == [f"Page{number}"]

    def test_rasters_released_after_each_page(self):
        source = FakeSource([(300, 600)] * 3)
        rasterizer = FakeRasterizer()
        assembler, _ = make_assembler([90] * 3, rasterizer=rasterizer)

        assembler.assemble(source)

        assert len(rasterizer.rasters) == 3
        assert all(r.released for r in rasterizer.rasters)

    def test_progress_updates(self):
        source = FakeSource([(300, 600)] * 2)
        assembler, _ = make_assembler([90, 90])
        updates = []

        assembler.assemble(source, progress_callback=updates.append)

        assert [(u.page_index, u.percent_within_page) for u in updates] == [(0, 0), (0, 100), (1, 0), (1, 100)]
        assert all(u.page_count == 2 for u in updates)
        assert updates[-1].overall_percent == pytest.approx(100.0)

    def test_empty_document(self):
        from pdf_recon.utils.errors import DocumentUnreadable

        assembler, _ = make_assembler([])

        with pytest.raises(DocumentUnreadable):
            assembler.assemble(FakeSource([]))

    def test_from_config(self):
        from pdf_recon.config import PipelineConfig
        from pdf_recon.utils.assembler import DocumentAssembler

        config = PipelineConfig()
        config.raster.scale = 2.0
        config.low_confidence_threshold = 50.0

        assembler = DocumentAssembler.from_config(config)

        assert assembler.raster_scale == 2.0
        assert assembler.low_confidence_threshold == 50.0
        assert assembler.failure_policy == "abort"

    def test_invalid_policy(self):
        from pdf_recon.utils.assembler import DocumentAssembler

        with pytest.raises(ValueError):
            DocumentAssembler(failure_policy="best-effort")


class TestFailurePolicy:
    """Abort and placeholder policies."""

    def test_recognition_failure_aborts_whole_document(self):
        """Page 2 of 3 fails: error surfaces, page 3 never starts."""
        from pdf_recon.utils.errors import RecognitionFailed

        source = FakeSource([(300, 600)] * 3)
        rasterizer = FakeRasterizer()
        assembler, engine = make_assembler([90, 90, 90], rasterizer=rasterizer, engine_fail=2)

        with pytest.raises(RecognitionFailed) as exc_info:
            assembler.assemble(source)

        assert exc_info.value.page_number == 2
        assert exc_info.value.stage == "recognize"
        assert rasterizer.calls == [0, 1]
        assert engine.calls == 2
        assert all(r.released for r in rasterizer.rasters)

    def test_render_failure_aborts(self):
        from pdf_recon.utils.errors import PageRenderFailed

        source = FakeSource([(300, 600)] * 2)
        assembler, _ = make_assembler([90, 90], rasterizer=FakeRasterizer(fail_on_page=1))

        with pytest.raises(PageRenderFailed) as exc_info:
            assembler.assemble(source)

        assert exc_info.value.page_number == 1
        assert exc_info.value.stage == "rasterize"

    @pytest.mark.parametrize("policy", ["abort", "placeholder"])
    def test_missing_engine_surfaces_recognition_failure(self, policy, monkeypatch):
        """Neither policy lets a missing OCR engine escape the error taxonomy."""
        from pdf_recon.utils import ocr_text
        from pdf_recon.utils.assembler import DocumentAssembler
        from pdf_recon.utils.errors import RecognitionFailed

        class MissingEngine:
            def __init__(self, **kwargs):
                raise ImportError("Tesseract not available")

        monkeypatch.setattr(ocr_text, "TesseractEngine", MissingEngine)
        rasterizer = FakeRasterizer()
        assembler = DocumentAssembler(failure_policy=policy, rasterizer=rasterizer)

        with pytest.raises(RecognitionFailed) as exc_info:
            assembler.assemble(FakeSource([(300, 600)] * 2))

        assert exc_info.value.page_number == 1
        assert exc_info.value.stage == "recognize"
        assert rasterizer.calls == []

    def test_placeholder_policy_flags_failed_pages(self):
        import pdfplumber

        source = FakeSource([(300, 600), (450, 300), (600, 900)])
        assembler, _ = make_assembler([95, 40, 50], engine_fail=2, failure_policy="placeholder")

        result = assembler.assemble(source)

        assert result.failed_pages == [2]
        assert result.per_page_confidence == [95, 0.0, 50]
        assert result.low_confidence_pages == [3]
        assert result.pages[1].placeholder is True

        with pdfplumber.open(io.BytesIO(result.pdf_bytes)) as pdf:
            assert len(pdf.pages) == 3
            assert float(pdf.pages[1].width) == pytest.approx(150.0)
            assert pdf.pages[1].extract_words() == []


class TestCancellation:
    """Cancellation between pages and of the running task."""

    def test_cancel_before_next_page(self):
        from pdf_recon.utils.errors import AssemblyCancelled

        source = FakeSource([(300, 600)] * 3)
        rasterizer = FakeRasterizer()
        assembler, _ = make_assembler([90] * 3, rasterizer=rasterizer)
        cancel = threading.Event()

        def on_progress(update):
            if update.page_index == 0 and update.percent_within_page == 100:
                cancel.set()

        with pytest.raises(AssemblyCancelled) as exc_info:
            assembler.assemble(source, progress_callback=on_progress, cancel_event=cancel)

        assert exc_info.value.next_page == 2
        assert rasterizer.calls == [0]
        assert rasterizer.rasters[0].released

    def test_already_cancelled(self):
        from pdf_recon.utils.errors import AssemblyCancelled

        cancel = threading.Event()
        cancel.set()
        rasterizer = FakeRasterizer()
        assembler, _ = make_assembler([90], rasterizer=rasterizer)

        with pytest.raises(AssemblyCancelled):
            assembler.assemble(FakeSource([(300, 600)]), cancel_event=cancel)
        assert rasterizer.calls == []

    def test_task_cancelled_during_recognition(self):
        """Cancelling the task mid-page still releases that page's raster."""
        from pdf_recon.utils.assembler import DocumentAssembler
        from pdf_recon.utils.ocr_text import PageRecognitionResult, TextOCR

        started = threading.Event()
        unblock = threading.Event()

        class SlowEngine:
            def recognize(self, image):
                started.set()
                unblock.wait(5)
                return PageRecognitionResult(full_text="", words=[], confidence=0.0)

        rasterizer = FakeRasterizer()
        assembler = DocumentAssembler(
            raster_scale=3.0, text_ocr=TextOCR(engine=SlowEngine()), rasterizer=rasterizer
        )

        async def run():
            task = asyncio.create_task(assembler.assemble_async(FakeSource([(300, 600)] * 3)))
            assert await asyncio.to_thread(started.wait, 5)
            task.cancel()
            try:
                with pytest.raises(asyncio.CancelledError):
                    await task
            finally:
                unblock.set()

        asyncio.run(run())

        assert rasterizer.calls == [0]
        assert rasterizer.rasters[0].released


class TestConcurrentDocuments:
    """Independent documents can be assembled concurrently."""

    def test_gathered_assemblies_keep_their_own_order(self):
        source_a = FakeSource([(300, 600)] * 2, name="a.pdf")
        source_b = FakeSource([(600, 300)] * 3, name="b.pdf")
        assembler_a, _ = make_assembler([80, 81])
        assembler_b, _ = make_assembler([60, 90, 65])

        async def run_both():
            return await asyncio.gather(
                assembler_a.assemble_async(source_a),
                assembler_b.assemble_async(source_b),
            )

        result_a, result_b = asyncio.run(run_both())

        assert result_a.per_page_confidence == [80, 81]
        assert result_b.per_page_confidence == [60, 90, 65]
        assert result_b.low_confidence_pages == [1, 3]
