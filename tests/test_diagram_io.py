import copy
import json
import os
import tempfile
import unittest

import constants
from diagram_io import diagram_from_payload, diagram_to_dict, dumps_diagram, load_diagram_file, save_diagram_file


def sample_payload():
    return {
        "version": "1.0",
        "meta": {"author": "tests"},
        "nodes": [
            {
                "id": "table-users",
                "type": "tableNode",
                "position": {"x": 0, "y": 40},
                "selected": False,
                "data": {
                    "label": "users",
                    "color": "#6366f1",
                    "note": "people",
                    "columns": [
                        {"id": "c1", "name": "id", "type": "INT", "isPrimaryKey": True, "isForeignKey": False,
                         "isNullable": False, "isUnique": True, "defaultValue": "AUTO_INCREMENT"},
                        {"id": "c2", "name": "email", "type": "VARCHAR", "isPrimaryKey": False,
                         "isForeignKey": False, "isNullable": True, "isUnique": True, "defaultValue": "",
                         "comment": "login"},
                    ],
                },
            },
            {
                "id": "table-posts",
                "type": "tableNode",
                "position": {"x": 450.5, "y": 40},
                "data": {
                    "label": "posts",
                    "color": "#0078D4",
                    "columns": [
                        {"id": "c3", "name": "user_id", "type": "INT", "isPrimaryKey": False,
                         "isForeignKey": True, "isNullable": True, "isUnique": False, "defaultValue": ""},
                    ],
                },
            },
        ],
        "edges": [
            {
                "id": "edge-1",
                "source": "table-posts",
                "target": "table-users",
                "type": "relation",
                "animated": True,
                "data": {"relationType": "one-to-many", "sourceColumn": "user_id", "targetColumn": "id",
                         "label": "author"},
            },
        ],
        "viewport": {"x": 10, "y": -5, "zoom": 0.8},
    }


class TestDiagramImport(unittest.TestCase):
    def test_round_trip_preserves_everything(self):
        payload = sample_payload()
        result = diagram_from_payload(copy.deepcopy(payload))
        self.assertTrue(result.ok, result.error)
        self.assertEqual(diagram_to_dict(result.diagram), payload)

    def test_import_builds_model(self):
        diagram = diagram_from_payload(sample_payload()).diagram
        self.assertEqual([t.label for t in diagram.tables], ["users", "posts"])
        users = diagram.tables[0]
        self.assertEqual(users.id, "table-users")
        self.assertEqual((users.x, users.y), (0.0, 40.0))
        self.assertTrue(users.get_column_by_name("id").is_pk)
        rel = diagram.relationships[0]
        self.assertEqual((rel.source_table_id, rel.source_column), ("table-posts", "user_id"))
        self.assertEqual(rel.kind, constants.REL_ONE_TO_MANY)

    def test_json_text_and_bytes(self):
        text = json.dumps(sample_payload())
        self.assertTrue(diagram_from_payload(text).ok)
        self.assertTrue(diagram_from_payload(text.encode("utf-8")).ok)

    def test_numeric_version_accepted(self):
        payload = sample_payload()
        payload["version"] = 1
        self.assertTrue(diagram_from_payload(payload).ok)

    def test_unsupported_version(self):
        payload = sample_payload()
        payload["version"] = "2.0"
        result = diagram_from_payload(payload)
        self.assertFalse(result.ok)
        self.assertIn("2.0", result.error)

    def test_duplicate_table_ids(self):
        payload = sample_payload()
        payload["nodes"][1]["id"] = "table-users"
        result = diagram_from_payload(payload)
        self.assertFalse(result)
        self.assertIn("Duplicate table id", result.error)

    def test_edge_with_missing_endpoint_dropped(self):
        payload = sample_payload()
        payload["edges"][0]["target"] = "table-gone"
        result = diagram_from_payload(payload)
        self.assertTrue(result.ok)
        self.assertEqual(result.diagram.relationships, [])
        self.assertEqual(len(result.warnings), 1)

    def test_unknown_relation_type(self):
        payload = sample_payload()
        payload["edges"][0]["data"]["relationType"] = "sometimes"
        result = diagram_from_payload(payload)
        self.assertFalse(result.ok)
        self.assertIn("relationType", result.error)

    def test_missing_required_field(self):
        payload = sample_payload()
        del payload["nodes"][0]["position"]
        self.assertFalse(diagram_from_payload(payload).ok)

    def test_invalid_json(self):
        result = diagram_from_payload("{not json")
        self.assertFalse(result.ok)
        self.assertTrue(result.error.startswith("Invalid JSON"))

    def test_not_an_object(self):
        self.assertFalse(diagram_from_payload([1, 2, 3]).ok)


class TestDiagramFiles(unittest.TestCase):
    def test_save_and_load(self):
        diagram = diagram_from_payload(sample_payload()).diagram
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "diagram.json")
            save_diagram_file(diagram, path)
            loaded = load_diagram_file(path)
        self.assertTrue(loaded.ok)
        self.assertEqual(diagram_to_dict(loaded.diagram), diagram_to_dict(diagram))

    def test_load_missing_file(self):
        result = load_diagram_file(os.path.join(tempfile.gettempdir(), "no-such-diagram.json"))
        self.assertFalse(result.ok)

    def test_dumps_is_valid_json(self):
        diagram = diagram_from_payload(sample_payload()).diagram
        self.assertEqual(json.loads(dumps_diagram(diagram))["version"], "1.0")


if __name__ == "__main__":
    unittest.main()
