import itertools
import unittest

import constants
from dbml_parser import parse_dbml
from reference_resolver import resolve_references


def make_id_factory():
    counter = itertools.count(1)
    return lambda prefix="": f"{prefix}{next(counter)}"


def parse_and_resolve(text):
    id_factory = make_id_factory()
    parsed = parse_dbml(text, id_factory=id_factory)
    return parsed, resolve_references(parsed.tables, parsed.unresolved_refs, id_factory=id_factory)


class TestResolveReferences(unittest.TestCase):
    def test_forward_reference(self):
        text = "Table posts {\n  user_id int [ref: > users.id]\n}\nTable users {\n  id int [pk]\n}"
        parsed, resolved = parse_and_resolve(text)
        posts, users = parsed.tables
        self.assertEqual(len(resolved.relationships), 1)
        rel = resolved.relationships[0]
        self.assertEqual((rel.source_table_id, rel.source_column), (posts.id, "user_id"))
        self.assertEqual((rel.target_table_id, rel.target_column), (users.id, "id"))
        self.assertTrue(rel.id.startswith(constants.EDGE_ID_PREFIX))
        self.assertEqual(resolved.dangling, [])

    def test_labels_match_case_insensitively(self):
        text = "Table Users {\n  id int\n}\nTable posts {\n  user_id int [ref: > users.id]\n}"
        parsed, resolved = parse_and_resolve(text)
        self.assertEqual(resolved.relationships[0].target_table_id, parsed.tables[0].id)

    def test_duplicate_labels_bind_to_first(self):
        text = ("Table users {\n  id int\n}\nTable users {\n  id int\n}\n"
                "Table posts {\n  user_id int [ref: > users.id]\n}")
        parsed, resolved = parse_and_resolve(text)
        self.assertEqual(resolved.relationships[0].target_table_id, parsed.tables[0].id)

    def test_dangling_target_keeps_fk_flag(self):
        text = "Table posts {\n  user_id int [ref: > users.id]\n}"
        parsed, resolved = parse_and_resolve(text)
        self.assertEqual(resolved.relationships, [])
        self.assertEqual(len(resolved.dangling), 1)
        self.assertTrue(parsed.tables[0].get_column_by_name("user_id").is_fk)
        self.assertIn("users", resolved.warnings[0])

    def test_standalone_ref_marks_source_column(self):
        text = "Table a {\n  b_id int\n}\nTable b {\n  id int\n}\nRef: a.b_id - b.id"
        parsed, resolved = parse_and_resolve(text)
        self.assertTrue(parsed.tables[0].get_column_by_name("b_id").is_fk)
        self.assertEqual(resolved.relationships[0].kind, constants.REL_ONE_TO_ONE)

    def test_standalone_ref_with_missing_source_column(self):
        text = "Table a {\n  id int\n}\nTable b {\n  id int\n}\nRef: a.missing > b.id"
        _, resolved = parse_and_resolve(text)
        self.assertEqual(resolved.relationships, [])
        self.assertEqual(len(resolved.dangling), 1)

    def test_deterministic(self):
        text = ("Table a {\n  id int\n  b_id int [ref: > b.id]\n}\n"
                "Table b {\n  id int\n  a_id int [ref: <> a.id]\n}")

        def snapshot():
            _, resolved = parse_and_resolve(text)
            return [(r.id, r.source_table_id, r.source_column, r.target_table_id, r.target_column, r.kind)
                    for r in resolved.relationships]

        self.assertEqual(snapshot(), snapshot())


if __name__ == "__main__":
    unittest.main()
