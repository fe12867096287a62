import json
import unittest

from digrams.tools.counter_store import DigramPair
from digrams.utils.envelope import Envelope, validate_envelope


class TestEnvelope(unittest.TestCase):
    def test_from_snapshot_and_validate(self):
        rows = [(DigramPair("a", "b"), 3), (DigramPair("b", "c"), 1)]
        env = Envelope.from_snapshot("/tmp/digrams", 4, rows, context="text-mode", order="descending", threshold=0)
        d = env.to_dict()
        self.assertEqual(d["status"], "SUCCESS")
        self.assertEqual(d["metadata"]["total"], 4)
        self.assertEqual(d["metadata"]["context"], "text-mode")
        self.assertEqual(d["records"][0], {"predecessor": "a", "event": "b", "count": 3, "percentage": 75.0})
        self.assertTrue(validate_envelope(d))
        self.assertTrue(env.validate())

    def test_empty_snapshot_has_no_results_status(self):
        env = Envelope.from_snapshot("/tmp/digrams", 0, [])
        self.assertEqual(env.status, "NO_RESULTS")
        self.assertTrue(env.validate())

    def test_json_round_trip(self):
        env = Envelope.from_snapshot("/tmp/digrams", 1, [(DigramPair("a", "b"), 1)])
        again = Envelope.from_json(env.to_json())
        self.assertEqual(again.to_dict(), json.loads(env.to_json()))

    def test_invalid_envelopes_rejected(self):
        self.assertFalse(validate_envelope({"metadata": {}, "records": []}))
        env = Envelope.from_snapshot("/tmp/digrams", 1, [(DigramPair("a", "b"), 1)])
        broken = env.to_dict()
        broken["records"][0]["count"] = 0
        self.assertFalse(validate_envelope(broken))
        self.assertFalse(validate_envelope("not a dict"))


if __name__ == "__main__":
    unittest.main()
