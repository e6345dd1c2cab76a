import unittest

import constants
from utils import generate_id, is_valid_color_hex, snap_to_grid, strip_code_fences


class TestGenerateId(unittest.TestCase):
    def test_prefix_and_length(self):
        table_id = generate_id(constants.TABLE_ID_PREFIX)
        self.assertTrue(table_id.startswith("table-"))
        self.assertEqual(len(table_id), len("table-") + constants.ID_LENGTH)

    def test_ids_are_unique(self):
        ids = {generate_id() for _ in range(200)}
        self.assertEqual(len(ids), 200)


class TestSnapToGrid(unittest.TestCase):
    def test_snaps_to_nearest_line(self):
        self.assertEqual(snap_to_grid(29, 20), 20)
        self.assertEqual(snap_to_grid(31, 20), 40)

    def test_zero_grid_is_identity(self):
        self.assertEqual(snap_to_grid(13.5, 0), 13.5)


class TestColorHex(unittest.TestCase):
    def test_accepts_hex_forms(self):
        for value in ("#fff", "#0078D4", "#0078d4ff"):
            self.assertTrue(is_valid_color_hex(value), value)

    def test_rejects_other_values(self):
        for value in ("0078D4", "#12345", "blue", "", None, "#gggggg"):
            self.assertFalse(is_valid_color_hex(value), value)


class TestStripCodeFences(unittest.TestCase):
    def test_tagged_fence(self):
        self.assertEqual(strip_code_fences("```dbml\nTable a {\n}\n```"), "Table a {\n}")

    def test_untagged_fence(self):
        self.assertEqual(strip_code_fences("```\nTable a {\n}\n```\n"), "Table a {\n}")

    def test_plain_text_untouched(self):
        self.assertEqual(strip_code_fences("  Table a {\n}  "), "Table a {\n}")

    def test_fence_followed_by_code_on_same_line(self):
        self.assertEqual(strip_code_fences("```Table a {}```"), "Table a {}")

    def test_empty(self):
        self.assertEqual(strip_code_fences(None), "")
        self.assertEqual(strip_code_fences(""), "")


if __name__ == "__main__":
    unittest.main()
