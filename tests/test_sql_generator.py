import unittest

import constants
from data_models import Column, Relationship, Table
from sql_generator import column_definition_sql, generate_sql_for_diagram


def blog_tables():
    users = Table("users", table_id="table-users", columns=[
        Column("id", "INT", is_pk=True, is_nullable=False, is_unique=True, default_value="AUTO_INCREMENT"),
        Column("email", "VARCHAR", is_unique=True),
    ])
    posts = Table("posts", table_id="table-posts", columns=[
        Column("id", "INT", is_pk=True),
        Column("user_id", "INT", is_fk=True),
    ])
    rel = Relationship("table-posts", "user_id", "table-users", "id", relationship_id="edge-1")
    return [users, posts], [rel]


class TestSqlGenerator(unittest.TestCase):
    def test_blocks_in_stored_order(self):
        tables, relationships = blog_tables()
        expected = (
            "CREATE TABLE users (\n"
            "  id INT NOT NULL DEFAULT AUTO_INCREMENT,\n"
            "  email VARCHAR UNIQUE,\n"
            "  PRIMARY KEY (id)\n"
            ");\n"
            "\n"
            "CREATE TABLE posts (\n"
            "  id INT,\n"
            "  user_id INT,\n"
            "  PRIMARY KEY (id),\n"
            "  FOREIGN KEY (user_id) REFERENCES users(id)\n"
            ");"
        )
        self.assertEqual(generate_sql_for_diagram(tables, relationships), expected)

    def test_composite_primary_key(self):
        table = Table("memberships", columns=[Column("user_id", "INT", is_pk=True), Column("group_id", "INT", is_pk=True)])
        self.assertIn("  PRIMARY KEY (user_id, group_id)", generate_sql_for_diagram([table], []))

    def test_many_to_many_is_plain_foreign_key(self):
        tables, relationships = blog_tables()
        relationships[0].kind = constants.REL_MANY_TO_MANY
        self.assertIn("FOREIGN KEY (user_id) REFERENCES users(id)", generate_sql_for_diagram(tables, relationships))

    def test_relationship_to_missing_table_skipped(self):
        tables, _ = blog_tables()
        rel = Relationship("table-posts", "user_id", "table-gone", "id")
        self.assertNotIn("FOREIGN KEY", generate_sql_for_diagram(tables, [rel]))

    def test_table_without_columns(self):
        self.assertEqual(generate_sql_for_diagram([Table("empty")], []), "CREATE TABLE empty (\n\n);")

    def test_no_tables(self):
        self.assertEqual(generate_sql_for_diagram([], []), "")

    def test_unique_not_repeated_for_primary_key(self):
        column = Column("id", "INT", is_pk=True, is_unique=True)
        self.assertEqual(column_definition_sql(column), "  id INT")


if __name__ == "__main__":
    unittest.main()
