import os
import tempfile
import unittest

import constants
from app_config import AppSettings, load_app_settings, save_app_settings


class TestAppConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "config.ini")

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, text):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)

    def test_missing_file_uses_defaults(self):
        settings = load_app_settings(self.path)
        self.assertEqual(settings.node_sep, constants.DEFAULT_NODE_SEP)
        self.assertTrue(settings.preserve_positions)
        self.assertFalse(os.path.exists(self.path))

    def test_create_if_missing(self):
        load_app_settings(self.path, create_if_missing=True)
        self.assertTrue(os.path.exists(self.path))

    def test_save_and_load(self):
        settings = AppSettings()
        settings.node_sep = 60
        settings.rank_sep = 320
        settings.preserve_positions = False
        settings.default_table_color = "#ec4899"
        settings.column_data_types = ["INT", "DECIMAL(10,2)", "TEXT"]
        settings.assistant_model = "some-model"
        settings.assistant_temperature = 0.5
        self.assertTrue(save_app_settings(settings, self.path))

        loaded = load_app_settings(self.path)
        self.assertEqual((loaded.node_sep, loaded.rank_sep), (60, 320))
        self.assertFalse(loaded.preserve_positions)
        self.assertEqual(loaded.default_table_color, "#ec4899")
        self.assertEqual(loaded.column_data_types, ["INT", "DECIMAL(10,2)", "TEXT"])
        self.assertEqual(loaded.assistant_model, "some-model")
        self.assertEqual(loaded.assistant_temperature, 0.5)

    def test_comma_separated_types(self):
        self.write("[ColumnDataTypes]\ntypes = int, decimal(10,2), text\n")
        self.assertEqual(load_app_settings(self.path).column_data_types, ["INT", "DECIMAL(10,2)", "TEXT"])

    def test_invalid_values_fall_back(self):
        self.write(
            "[Layout]\nnode_sep = wide\nrank_sep = -5\npreserve_positions = maybe\n"
            "[DefaultTableColors]\ncolor_hex = purple\n"
            "[Assistant]\ntemperature = hot\n"
        )
        settings = load_app_settings(self.path)
        self.assertEqual(settings.node_sep, constants.DEFAULT_NODE_SEP)
        self.assertEqual(settings.rank_sep, constants.DEFAULT_RANK_SEP)
        self.assertTrue(settings.preserve_positions)
        self.assertEqual(settings.default_table_color, constants.DEFAULT_TABLE_COLOR)
        self.assertEqual(settings.assistant_temperature, constants.DEFAULT_ASSISTANT_TEMPERATURE)

    def test_layout_spacing(self):
        spacing = AppSettings().layout_spacing()
        self.assertEqual(set(spacing), {"node_sep", "rank_sep", "edge_sep", "component_gap", "table_width"})


if __name__ == "__main__":
    unittest.main()
