# User value: This file verifies stored metadata stays small and decodes back into readable fields.
import json
import unittest
from datetime import datetime, timezone

from schemas.analysis import AnalysisResult, FieldEntry
from services.metadata_codec import (
    DEFAULT_LIMITS,
    MetadataLimits,
    decode,
    describe_degradation,
    encode,
    is_meaningful,
    parse_envelope,
    parse_slot_key,
    resolve_document_type,
)


def _completed(fields=None, **kwargs) -> AnalysisResult:
    base = {
        "id": "op-1",
        "status": "completed",
        "document_type": "invoice",
        "confidence": 0.93,
        "extracted_text": "Invoice 42",
        "fields": fields or [],
        "processed_at": "2024-01-15T10:00:00Z",
    }
    base.update(kwargs)
    return AnalysisResult(**base)


class MetadataEncodeUnitTests(unittest.TestCase):
    # User value: listings show type, confidence and status without reading the full result.
    def test_encode_writes_scalar_slots(self):
        metadata = encode(_completed(fields=[FieldEntry(key="Total", value="100", confidence=0.9)]))
        self.assertEqual(metadata["documenttype"], "invoice")
        self.assertEqual(metadata["confidence"], "0.93")
        self.assertEqual(metadata["status"], "completed")
        self.assertEqual(metadata["processedat"], "2024-01-15T10:00:00Z")
        self.assertEqual(metadata["extractedtext"], "Invoice 42")
        self.assertEqual(metadata["kv0key"], "Total")
        self.assertEqual(metadata["kv0value"], "100")
        self.assertEqual(metadata["kv0confidence"], "0.9")

    # User value: stored records never exceed the object metadata ceiling.
    def test_encode_respects_limits(self):
        fields = [FieldEntry(key=f"K{i}" + "k" * 150, value="v" * 500, confidence=0.5) for i in range(8)]
        metadata = encode(_completed(fields=fields, extracted_text="x" * 5000))

        self.assertEqual(len(metadata["extractedtext"]), 1000)
        indices = {parse_slot_key(k)[0] for k in metadata if parse_slot_key(k)}
        self.assertEqual(indices, {0, 1, 2, 3, 4})
        for i in range(5):
            self.assertLessEqual(len(metadata[f"kv{i}key"]), 100)
            self.assertLessEqual(len(metadata[f"kv{i}value"]), 200)
        for key, value in metadata.items():
            self.assertIsInstance(key, str)
            self.assertIsInstance(value, str)
            self.assertEqual(key, key.lower())

    # User value: a failed analysis never leaves stale fields behind.
    def test_encode_failed_writes_status_only(self):
        failed = AnalysisResult(id="op-2", status="failed", error="bad input")
        self.assertEqual(encode(failed), {"status": "failed"})

    def test_encode_uses_now_when_processed_at_missing(self):
        now = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        metadata = encode(_completed(processed_at=None), now=now)
        self.assertEqual(metadata["processedat"], now.isoformat())

    def test_encode_unknown_type_when_missing(self):
        metadata = encode(_completed(document_type=None))
        self.assertEqual(metadata["documenttype"], "unknown")

    # User value: operators can see when a listing shows less than the full result.
    def test_describe_degradation_reports_truncation(self):
        fields = [FieldEntry(key="k", value="v" * 300)] + [FieldEntry(key=f"f{i}", value="x") for i in range(6)]
        reasons = describe_degradation(_completed(fields=fields, extracted_text="t" * 1001), DEFAULT_LIMITS)
        self.assertIn("fields_dropped=2", reasons)
        self.assertIn("extracted_text_truncated", reasons)
        self.assertIn("kv0value_truncated", reasons)

    def test_describe_degradation_empty_when_within_limits(self):
        self.assertEqual(describe_degradation(_completed(fields=[FieldEntry(key="a", value="b")])), [])


class MetadataDecodeUnitTests(unittest.TestCase):
    # User value: encoded fields come back with the same keys, values and confidences.
    def test_encode_then_decode_keeps_first_fields(self):
        fields = [
            FieldEntry(key="InvoiceTotal", value="120.50", confidence=0.88),
            FieldEntry(key="Vendor", value="Acme", confidence=0.7),
            FieldEntry(key="DocType", value="Invoice", confidence=0.99),
        ]
        decoded = decode(encode(_completed(fields=fields)))
        self.assertEqual(decoded, fields)

    def test_decode_caps_at_max_fields(self):
        limits = MetadataLimits(max_fields=2)
        fields = [FieldEntry(key=f"k{i}", value=f"v{i}", confidence=0.5) for i in range(4)]
        decoded = decode(encode(_completed(fields=fields), limits))
        self.assertEqual([e.key for e in decoded], ["k0", "k1"])

    # User value: decoding a decoded record gives the same answer every time.
    def test_decode_is_idempotent(self):
        metadata = {
            "kv0key": "Date",
            "kv0value": json.dumps({"type": "date", "valueDate": "2024-01-15"}),
            "kv0confidence": "0.8",
        }
        first = decode(metadata)
        again = decode(encode(_completed(fields=first)))
        self.assertEqual(first, again)

    # User value: typed envelopes render as readable values (dates, yes/no).
    def test_envelopes_unwrap(self):
        metadata = {
            "kv0key": "IssuedOn",
            "kv0value": json.dumps({"type": "date", "valueDate": "2024-01-15"}),
            "kv1key": "Signed",
            "kv1value": json.dumps({"type": "boolean", "valueBoolean": False}),
            "kv2key": "Name",
            "kv2value": json.dumps({"type": "string", "valueString": "Jane"}),
            "kv3key": "Amount",
            "kv3value": json.dumps({"type": "number", "valueNumber": 12.5}),
        }
        values = {e.key: e.value for e in decode(metadata)}
        self.assertEqual(values, {"IssuedOn": "1/15/2024", "Signed": "No", "Name": "Jane", "Amount": "12.5"})

    # User value: placeholders and raw type tags never show up as extracted data.
    def test_meaningless_values_are_dropped(self):
        metadata = {
            "kv0key": "Empty",
            "kv0value": "   ",
            "kv1key": "Tag",
            "kv1value": '{"type":"string"}',
            "kv2key": "Null",
            "kv2value": "null",
            "kv3key": "Obj",
            "kv3value": "{}",
            "kv4key": "Real",
            "kv4value": "42",
        }
        decoded = decode(metadata)
        self.assertEqual([e.key for e in decoded], ["Real"])

    def test_missing_key_or_value_skips_group(self):
        metadata = {"kv0value": "orphan", "kv1key": "NoValue", "kv2key": "Ok", "kv2value": "yes"}
        self.assertEqual([e.key for e in decode(metadata)], ["Ok"])

    def test_foreign_keys_are_ignored(self):
        metadata = {"originalfile": "a.pdf", "kvxkey": "junk", "kv0key": "A", "kv0value": "B"}
        self.assertEqual(decode(metadata), [FieldEntry(key="A", value="B", confidence=1.0)])

    def test_confidence_defaults_and_clamps(self):
        metadata = {
            "kv0key": "A", "kv0value": "1",
            "kv1key": "B", "kv1value": "2", "kv1confidence": "abc",
            "kv2key": "C", "kv2value": "3", "kv2confidence": "0",
            "kv3key": "D", "kv3value": "4", "kv3confidence": "7",
        }
        confidences = [e.confidence for e in decode(metadata)]
        self.assertEqual(confidences, [1.0, 1.0, 0.0, 1.0])

    def test_decode_orders_by_index(self):
        metadata = {"kv3key": "late", "kv3value": "x", "kv1key": "early", "kv1value": "y"}
        self.assertEqual([e.key for e in decode(metadata)], ["early", "late"])

    def test_decode_empty(self):
        self.assertEqual(decode({}), [])

    def test_parse_envelope_falls_back_to_raw(self):
        self.assertEqual(parse_envelope("plain text").render(), "plain text")
        self.assertEqual(parse_envelope("[1, 2]").render(), "[1, 2]")
        self.assertEqual(parse_envelope('{"valueDate": "not-a-date"}').render(), "not-a-date")

    # User value: one deeply nested stored value cannot break a whole listing.
    def test_deeply_nested_value_decodes_raw(self):
        nested = "[" * 5000
        self.assertEqual(parse_envelope(nested).render(), nested)
        decoded = decode({"kv0key": "Deep", "kv0value": nested, "kv1key": "Ok", "kv1value": "1"})
        self.assertEqual([e.key for e in decoded], ["Deep", "Ok"])

    # User value: analyzer timestamps show as plain dates.
    def test_date_envelope_with_time_component(self):
        for raw in ("2024-01-15T00:00:00Z", "2024-01-15T00:00:00.000Z", "2024-01-15T08:30:00.1234567Z"):
            value = json.dumps({"type": "date", "valueDate": raw})
            self.assertEqual(decode({"kv0key": "IssuedOn", "kv0value": value})[0].value, "1/15/2024")

    def test_json_string_value_unwraps(self):
        self.assertEqual(parse_envelope('"abc"').render(), "abc")
        self.assertEqual(decode({"kv0key": "Name", "kv0value": '"abc"'})[0].value, "abc")
        self.assertEqual(decode({"kv0key": "Blank", "kv0value": '""'}), [])

    def test_is_meaningful(self):
        self.assertTrue(is_meaningful("0"))
        self.assertFalse(is_meaningful("undefined"))
        self.assertFalse(is_meaningful("[]"))


class DocumentTypeResolutionUnitTests(unittest.TestCase):
    # User value: an explicit DocType field wins over the stored analyzer guess.
    def test_doctype_field_wins(self):
        metadata = {"documenttype": "receipt", "kv0key": "DocType", "kv0value": "Invoice"}
        self.assertEqual(resolve_document_type(metadata), "Invoice")

    def test_falls_back_to_slots(self):
        self.assertEqual(resolve_document_type({"documenttype": "receipt"}), "receipt")
        self.assertEqual(resolve_document_type({"doctype": "contract"}), "contract")
        self.assertEqual(resolve_document_type({}), "unknown")


if __name__ == "__main__":
    unittest.main()
