import io
import re
import unittest
import zipfile

from legalease import analysis
from legalease.errors import EmptyResponse, RemoteServiceError
from legalease.fallback import fallback_analysis
from legalease.prompts import ANALYSIS_GENERATION_CONFIG
from legalease.tests.fakes import FakeGeminiClient, analysis_json

DEVANAGARI = re.compile(r"[ऀ-ॿ]")
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _docx_bytes(paragraph):
    xml = (
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body><w:p><w:r><w:t>{paragraph}</w:t></w:r></w:p></w:body></w:document>"
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("word/document.xml", xml)
    return buffer.getvalue()


def _chunk_response(index, clause_count=1):
    clauses = [
        {"title": f"Chunk {index} clause {number}", "risk_level": "LOW"}
        for number in range(clause_count)
    ]
    return analysis_json(
        summary_en=f"Section {index} summary.",
        summary_local=f"खंड {index} का सारांश।",
        clauses=clauses,
        recommended_questions=[f"Question {index}?", "Shared question?"],
    )


class TestSingleShot(unittest.TestCase):
    def test_text_document_uses_one_call(self):
        client = FakeGeminiClient([analysis_json(summary_en="Lease reviewed.")])

        outcome = analysis.run_analysis("The lessee shall pay rent.", "lease.pdf", "en", client)

        self.assertEqual(outcome.path, "single_shot")
        self.assertEqual(outcome.analysis.summary_en, "Lease reviewed.")
        self.assertEqual(len(client.calls), 1)
        self.assertEqual(client.calls[0]["generation_config"], ANALYSIS_GENERATION_CONFIG)
        self.assertIn("The lessee shall pay rent.", client.calls[0]["parts"][0]["text"])

    def test_text_at_threshold_is_not_chunked(self):
        client = FakeGeminiClient()

        outcome = analysis.run_analysis("a" * analysis.LARGE_DOCUMENT_THRESHOLD, "big.pdf", "en", client)

        self.assertEqual(outcome.path, "single_shot")
        self.assertEqual(len(client.calls), 1)

    def test_image_marker_takes_vision_path(self):
        client = FakeGeminiClient()
        marker = "[IMAGE_DATA:image/png]data:image/png;base64,QUJD"

        outcome = analysis.run_analysis(marker, "challan.png", "en", client)

        self.assertEqual(outcome.path, "single_shot")
        parts = client.calls[0]["parts"]
        self.assertIn("OCR", parts[0]["text"])
        self.assertEqual(parts[1]["inline_data"], {"mime_type": "image/png", "data": "QUJD"})

    def test_malformed_response_is_normalized_not_fallback(self):
        client = FakeGeminiClient(["The model rambled without JSON."])

        outcome = analysis.run_analysis("Some agreement text.", "agreement.pdf", "en", client)

        self.assertEqual(outcome.path, "single_shot")
        self.assertEqual(outcome.analysis.clauses[0].title, "Document Analysis")
        self.assertEqual(outcome.analysis.clauses[0].source_excerpt, "Some agreement text.")


class TestFallbackPaths(unittest.TestCase):
    def test_remote_failure_falls_back(self):
        client = FakeGeminiClient([RemoteServiceError(503, "unavailable")])

        result = analysis.analyze_document("Motor Vehicles Act notice", "UP_Traffic_Challan_2019.pdf", "en", client)

        self.assertEqual(result, fallback_analysis("Motor Vehicles Act notice", "UP_Traffic_Challan_2019.pdf", "en"))
        self.assertEqual(result.clauses[0].risk_level, "HIGH")

    def test_empty_response_falls_back(self):
        client = FakeGeminiClient([EmptyResponse("nothing")])

        outcome = analysis.run_analysis("text", "doc.pdf", "en", client)

        self.assertTrue(outcome.used_fallback)

    def test_unexpected_exception_falls_back(self):
        client = FakeGeminiClient([RuntimeError("boom")])

        outcome = analysis.run_analysis("text", "doc.pdf", "en", client)

        self.assertTrue(outcome.used_fallback)
        self.assertIn("boom", outcome.warnings[0])

    def test_missing_client_falls_back(self):
        outcome = analysis.run_analysis("Rent deed", "rental.pdf", "en", None)

        self.assertTrue(outcome.used_fallback)
        self.assertIn("rental agreement", outcome.analysis.summary_en)

    def test_empty_text_falls_back(self):
        outcome = analysis.run_analysis("   ", "doc.pdf", "en", FakeGeminiClient())

        self.assertTrue(outcome.used_fallback)

    def test_image_failure_does_not_echo_payload(self):
        client = FakeGeminiClient([RemoteServiceError(None, "network error: timed out")])
        marker = "[IMAGE_DATA:image/png]data:image/png;base64,QUJD"

        outcome = analysis.run_analysis(marker, "scan.png", "en", client)

        self.assertTrue(outcome.used_fallback)
        self.assertNotIn("QUJD", outcome.analysis.clauses[0].source_excerpt)


class TestChunkedPath(unittest.TestCase):
    def test_partial_chunk_failure_combines_survivors(self):
        client = FakeGeminiClient(
            [_chunk_response(1), RemoteServiceError(500, "internal"), _chunk_response(3)]
        )

        outcome = analysis.run_analysis("x" * 150_000, "long.pdf", "en", client)

        self.assertEqual(outcome.path, "chunked")
        self.assertEqual(outcome.chunk_count, 3)
        self.assertEqual(outcome.failed_chunks, [1])
        self.assertEqual(len(client.calls), 3)
        self.assertEqual(outcome.analysis.summary_en, "Section 1 summary. Section 3 summary.")
        self.assertEqual(
            [clause.title for clause in outcome.analysis.clauses],
            ["Chunk 1 clause 0", "Chunk 3 clause 0"],
        )

    def test_all_chunks_failing_falls_back(self):
        failure = RemoteServiceError(429, "quota")
        client = FakeGeminiClient([failure, failure, failure])

        outcome = analysis.run_analysis("x" * 150_000, "long.pdf", "en", client)

        self.assertTrue(outcome.used_fallback)
        self.assertEqual(outcome.failed_chunks, [0, 1, 2])

    def test_chunk_prompts_carry_position(self):
        client = FakeGeminiClient()

        analysis.run_analysis("y" * 150_000, "long.pdf", "en", client)

        self.assertIn("chunk 1 of 3", client.calls[0]["parts"][0]["text"])
        self.assertIn("chunk 3 of 3", client.calls[2]["parts"][0]["text"])

    def test_two_hundred_thousand_character_hindi_document(self):
        clause_counts = [2, 1, 3, 1]
        client = FakeGeminiClient(
            [_chunk_response(index + 1, count) for index, count in enumerate(clause_counts)]
        )
        text = "word " * 40_000

        outcome = analysis.run_analysis(text, "judgment.pdf", "hi", client)

        self.assertEqual(outcome.path, "chunked")
        self.assertEqual(outcome.chunk_count, 4)
        self.assertEqual(len(client.calls), 4)
        result = outcome.analysis
        self.assertTrue(result.summary_en)
        self.assertRegex(result.summary_local, DEVANAGARI)
        self.assertEqual(len(result.clauses), sum(clause_counts))
        self.assertEqual(len(result.recommended_questions), len(set(result.recommended_questions)))
        self.assertEqual(result.recommended_questions[:2], ["Question 1?", "Shared question?"])


class TestAnalyzeUpload(unittest.TestCase):
    def test_unsupported_type_is_rejected(self):
        outcome = analysis.analyze_upload("notes.txt", "text/plain", b"hello", "en", FakeGeminiClient())

        self.assertEqual(outcome.path, "rejected")
        self.assertIsNone(outcome.analysis)

    def test_docx_upload_is_analyzed(self):
        client = FakeGeminiClient()

        outcome = analysis.analyze_upload(
            "lease.docx", None, _docx_bytes("The tenant shall pay rent."), "en", client
        )

        self.assertEqual(outcome.path, "single_shot")
        self.assertEqual(outcome.text, "The tenant shall pay rent.")
        self.assertIn("The tenant shall pay rent.", client.calls[0]["parts"][0]["text"])

    def test_extraction_failure_falls_back(self):
        client = FakeGeminiClient()

        outcome = analysis.analyze_upload(
            "traffic_challan.docx",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            b"not a zip",
            "en",
            client,
        )

        self.assertTrue(outcome.used_fallback)
        self.assertEqual(client.calls, [])
        self.assertEqual(outcome.analysis.clauses[0].risk_level, "HIGH")

    def test_image_upload_uses_inline_data(self):
        client = FakeGeminiClient()

        outcome = analysis.analyze_upload("challan.png", "image/png", PNG_BYTES, "hi", client)

        self.assertEqual(outcome.path, "single_shot")
        self.assertEqual(outcome.media_type, "image/png")
        self.assertEqual(client.calls[0]["parts"][1]["inline_data"]["mime_type"], "image/png")


if __name__ == "__main__":
    unittest.main()
