# User value: This file verifies raw analyzer responses become one consistent result shape.
import unittest

from services.result_transformer import clamp_confidence, coerce_field, normalize


def _succeeded(fields, doc_type="receipt", confidence=0.91, content="Total 10"):
    return {
        "status": "Succeeded",
        "lastUpdatedDateTime": "2024-05-01T08:00:00Z",
        "result": {
            "content": content,
            "contents": [
                {"fields": fields, "docType": doc_type, "confidence": confidence},
                {"fields": {"Ignored": "x"}, "docType": "other"},
            ],
            "tables": [
                {
                    "rowCount": 1,
                    "columnCount": 2,
                    "cells": [
                        {"content": "Item", "rowIndex": 0, "columnIndex": 0},
                        {"content": "Qty", "rowIndex": 0, "columnIndex": 1},
                    ],
                }
            ],
        },
    }


class ResultTransformerUnitTests(unittest.TestCase):
    # User value: an explicit DocType field overrides the analyzer's own classification.
    def test_doctype_field_wins_over_record_type(self):
        raw = _succeeded({"DocType": {"valueString": "Invoice", "confidence": 0.97}, "Total": "10"})
        result = normalize("op-1", raw)

        self.assertEqual(result.status, "completed")
        self.assertEqual(result.id, "op-1")
        self.assertEqual(result.document_type, "Invoice")
        self.assertAlmostEqual(result.confidence, 0.91)
        self.assertEqual(result.extracted_text, "Total 10")
        self.assertEqual(result.processed_at, "2024-05-01T08:00:00Z")
        self.assertEqual([f.key for f in result.fields], ["DocType", "Total"])
        self.assertEqual(result.fields[1].confidence, 1.0)
        self.assertEqual(result.tables[0].cells[1].text, "Qty")

    def test_record_type_used_without_doctype_field(self):
        result = normalize("op-1", _succeeded({"Total": "10"}))
        self.assertEqual(result.document_type, "receipt")

    def test_unknown_type_when_nothing_available(self):
        result = normalize("op-1", _succeeded({}, doc_type=None, confidence=None, content=None))
        self.assertEqual(result.document_type, "unknown")
        self.assertEqual(result.confidence, 0.0)
        self.assertEqual(result.extracted_text, "")
        self.assertEqual(result.fields, [])

    # User value: analyzer failures come back as a readable failed result.
    def test_failed_operation(self):
        raw = {"status": "Failed", "error": {"code": "InvalidContent", "message": "Unsupported file"}}
        result = normalize("op-2", raw)
        self.assertEqual(result.status, "failed")
        self.assertEqual(result.error, "Unsupported file")
        self.assertEqual(result.fields, [])

    def test_failed_operation_default_message(self):
        result = normalize("op-2", {"status": "failed"})
        self.assertEqual(result.error, "Analysis failed")

    def test_running_or_empty_result_is_processing(self):
        self.assertEqual(normalize("op-3", {"status": "Running"}).status, "processing")
        self.assertEqual(normalize("op-3", {"status": "Succeeded"}).status, "processing")

    # User value: typed field objects still show a readable value.
    def test_coerce_field_variants(self):
        self.assertEqual(coerce_field("A", {"valueString": "x", "confidence": 0.4}).value, "x")
        self.assertEqual(coerce_field("B", {"content": "y"}).value, "y")
        self.assertEqual(coerce_field("B", {"content": "y"}).confidence, 0.0)

        date_field = coerce_field("C", {"type": "date", "valueDate": "2024-01-15"})
        self.assertEqual(date_field.value, '{"type":"date","valueDate":"2024-01-15"}')

        self.assertEqual(coerce_field("D", 12.0).value, "12")
        self.assertEqual(coerce_field("E", True).value, "true")
        self.assertEqual(coerce_field("F", None).value, "")
        self.assertEqual(coerce_field("G", 0).value, "0")
        self.assertEqual(coerce_field("H", False).value, "false")

    # User value: array fields stay readable as JSON and never pass as fully confident.
    def test_coerce_field_list(self):
        entry = coerce_field("Items", [{"valueString": "a"}, 2])
        self.assertEqual(entry.value, '[{"valueString":"a"},2]')
        self.assertEqual(entry.confidence, 0.0)
        self.assertEqual(coerce_field("Empty", []).value, "[]")

    # User value: odd analyzer payloads still produce a result instead of a server error.
    def test_malformed_payload_shapes(self):
        raw = {
            "status": "Succeeded",
            "lastUpdatedDateTime": 1714550400,
            "result": {
                "content": "text",
                "contents": {"0": {"fields": {"A": "1"}}},
                "tables": [
                    {"rowCount": "two", "columnCount": None, "cells": [{"content": "x", "rowIndex": "r", "columnIndex": 1}]},
                    {"rowCount": 1, "columnCount": 1, "cells": "nope"},
                    "junk",
                ],
            },
        }
        result = normalize("op-9", raw)
        self.assertEqual(result.status, "completed")
        self.assertEqual(result.fields, [])
        self.assertEqual(result.document_type, "unknown")
        self.assertEqual(result.processed_at, "1714550400")
        self.assertEqual(len(result.tables), 2)
        self.assertEqual((result.tables[0].row_count, result.tables[0].column_count), (0, 0))
        self.assertEqual((result.tables[0].cells[0].row_index, result.tables[0].cells[0].column_index), (0, 1))
        self.assertEqual(result.tables[1].cells, [])

    def test_failed_operation_with_numeric_timestamp(self):
        result = normalize("op-10", {"status": "Failed", "lastUpdatedDateTime": 5})
        self.assertEqual(result.processed_at, "5")

    def test_clamp_confidence(self):
        self.assertEqual(clamp_confidence(1.7, 0.0), 1.0)
        self.assertEqual(clamp_confidence(-3, 0.0), 0.0)
        self.assertEqual(clamp_confidence("nope", 0.5), 0.5)
        self.assertEqual(clamp_confidence(float("nan"), 0.5), 0.5)


if __name__ == "__main__":
    unittest.main()
