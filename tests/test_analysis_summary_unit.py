# User value: This file verifies dashboard counters and file listings built from stored analysis records.
import unittest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from schemas.analysis import AnalysisResult, FieldEntry
from services import analysis_summary
from services.analysis_summary import display_name, file_type, format_bytes, round_half_up


def _blob(name, metadata=None, size=0, updated=None):
    return SimpleNamespace(
        name=name,
        metadata=metadata,
        size=size,
        updated=updated or datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class SummaryHelpersUnitTests(unittest.TestCase):
    def test_format_bytes(self):
        self.assertEqual(format_bytes(0), "0 Bytes")
        self.assertEqual(format_bytes(None), "0 Bytes")
        self.assertEqual(format_bytes(512), "512 Bytes")
        self.assertEqual(format_bytes(1024), "1 KB")
        self.assertEqual(format_bytes(1536), "1.5 KB")
        self.assertEqual(format_bytes(1024 * 1024 * 3), "3 MB")
        self.assertEqual(format_bytes(1234567, digits=2), "1.18 MB")

    def test_file_type(self):
        self.assertEqual(file_type("scan.JPG"), "image")
        self.assertEqual(file_type("a/b/report.pdf"), "pdf")
        self.assertEqual(file_type("letter.docx"), "document")
        self.assertEqual(file_type("README"), "file")

    # User value: dashboards show friendly names instead of raw analyzer types.
    def test_display_name(self):
        self.assertEqual(display_name("x.pdf", "Commercial Invoice"), "Invoice")
        self.assertEqual(display_name("x.pdf", "unknown"), "Unidentified Document")
        self.assertEqual(display_name("x.pdf", "Permit"), "Permit")
        self.assertEqual(display_name("x.pdf", ""), "x.pdf")

    def test_round_half_up(self):
        self.assertEqual(round_half_up(92.5), 93)
        self.assertEqual(round_half_up(92.4), 92)


class AnalysisSummaryUnitTests(unittest.TestCase):
    def setUp(self):
        self.gcs = MagicMock()
        self.gcs.load_sidecar_or_none.return_value = None
        patchers = [
            patch.object(analysis_summary, "gcs", self.gcs),
            patch.object(analysis_summary, "is_summary_sidecar_read_enabled", return_value=True),
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)

    # User value: one call gives totals, verdicts and the still-unanalyzed files.
    def test_build_summary_counts(self):
        self.gcs.list_document_blobs.return_value = [
            _blob("invoice.pdf", {"status": "completed", "confidence": "0.95", "documenttype": "invoice",
                                  "kv0key": "Total", "kv0value": "10", "kv0confidence": "0.876"}),
            _blob("blurry.png", {"status": "completed", "confidence": "0.4", "documenttype": "receipt"}),
            _blob("middle.pdf", {"status": "completed", "confidence": "0.8"}),
            _blob("new.docx", None, size=2048),
            _blob("broken.pdf", {"status": "failed"}, size=10),
        ]
        response = analysis_summary.build_analysis_summary(policy="approve")
        summary = response.summary

        self.assertEqual(summary.total_files, 5)
        self.assertEqual(summary.analyzed_files, 3)
        self.assertEqual(summary.unmapped_files, 2)
        self.assertEqual(summary.approved_files, 2)
        self.assertEqual(summary.rejected_files, 1)
        self.assertEqual(summary.major_errors, 1)
        self.assertEqual(summary.overall_progress, 60)

        first, low, middle = response.analysis_results
        self.assertEqual(first.id, "invoicepdf")
        self.assertEqual(first.name, "Invoice")
        self.assertEqual(first.match_percentage, 95)
        self.assertEqual((first.approval_status, first.criteria), ("Approved", "9/9"))
        self.assertEqual(first.details.extracted_fields[0].confidence, 88)
        self.assertIsNone(first.details.issues)

        self.assertEqual((low.approval_status, low.criteria), ("Rejected", "5/9"))
        self.assertEqual(len(low.details.issues), 2)
        self.assertEqual(len(low.details.recommendations), 2)

        self.assertEqual((middle.approval_status, middle.criteria), ("Approved", "8/9"))
        self.assertEqual(middle.type, "unknown")
        self.assertIsNone(middle.details.issues)

        self.assertEqual(response.unmapped_files[0].name, "new.docx")
        self.assertEqual(response.unmapped_files[0].type, "document")
        self.assertEqual(response.unmapped_files[0].size, "2 KB")

    def test_unmapped_preview_is_capped(self):
        self.gcs.list_document_blobs.return_value = [_blob(f"f{i}.pdf") for i in range(12)]
        response = analysis_summary.build_analysis_summary()
        self.assertEqual(response.summary.unmapped_files, 12)
        self.assertEqual(len(response.unmapped_files), 8)
        self.assertEqual(response.summary.overall_progress, 0)

    def test_empty_bucket(self):
        self.gcs.list_document_blobs.return_value = []
        response = analysis_summary.build_analysis_summary()
        self.assertEqual(response.summary.total_files, 0)
        self.assertEqual(response.summary.overall_progress, 0)

    def test_sidecar_fields_preferred_for_preview(self):
        sidecar = AnalysisResult(
            id="op",
            status="completed",
            document_type="invoice",
            fields=[FieldEntry(key=f"F{i}", value=str(i), confidence=0.5) for i in range(6)],
        )
        self.gcs.load_sidecar_or_none.return_value = sidecar
        self.gcs.list_document_blobs.return_value = [
            _blob("invoice.pdf", {"status": "completed", "confidence": "0.95", "documenttype": "invoice"}),
        ]
        item = analysis_summary.build_analysis_summary().analysis_results[0]
        self.assertEqual([f.field for f in item.details.extracted_fields], ["F0", "F1", "F2"])


class ListDocumentsUnitTests(unittest.TestCase):
    def setUp(self):
        self.gcs = MagicMock()
        self.gcs.load_sidecar_or_none.return_value = None
        patchers = [
            patch.object(analysis_summary, "gcs", self.gcs),
            patch.object(analysis_summary, "is_summary_sidecar_read_enabled", return_value=True),
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)

    # User value: listings show extracted pairs from metadata without opening the full result.
    def test_states_and_fields(self):
        self.gcs.list_document_blobs.return_value = [
            _blob("old.pdf", {"status": "completed", "documenttype": "receipt", "kv0key": "DocType", "kv0value": "Invoice"},
                  updated=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            _blob("new.pdf", None, size=1234567, updated=datetime(2024, 3, 1, tzinfo=timezone.utc)),
            _blob("bad.pdf", {"status": "failed"}, updated=datetime(2024, 2, 1, tzinfo=timezone.utc)),
        ]
        files = analysis_summary.list_documents().files

        self.assertEqual([f.name for f in files], ["new.pdf", "bad.pdf", "old.pdf"])
        self.assertEqual([f.status for f in files], ["pending", "rejected", "analyzed"])
        self.assertEqual(files[0].size, "1.18 MB")
        self.assertEqual(files[2].document_type, "Invoice")
        self.assertEqual(files[2].key_value_pairs[0].key, "DocType")
        self.gcs.load_sidecar_or_none.assert_not_called()

    # User value: older records without metadata fields still show pairs from the sidecar.
    def test_sidecar_fallback_when_metadata_has_no_fields(self):
        sidecar = AnalysisResult(
            id="op",
            status="completed",
            document_type="contract",
            fields=[FieldEntry(key="Party", value="Acme", confidence=0.8)],
        )
        self.gcs.load_sidecar_or_none.return_value = sidecar
        self.gcs.list_document_blobs.return_value = [_blob("c.pdf", {"status": "completed", "documenttype": "contract"})]

        item = analysis_summary.list_documents().files[0]
        self.assertEqual(item.key_value_pairs[0].value, "Acme")
        self.assertEqual(item.analysis_result, sidecar)
        self.assertEqual(item.document_type, "contract")


if __name__ == "__main__":
    unittest.main()
