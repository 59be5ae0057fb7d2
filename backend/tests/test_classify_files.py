import unittest

from driftwatch.dtos.github import FileChange
from driftwatch.services.classify_files import classify_files, is_doc_file, matches_any


class TestClassifyFiles(unittest.TestCase):

    def test_splits_code_and_docs(self):
        result = classify_files(
            [
                FileChange(filename="src/app.py", status="modified"),
                FileChange(filename="README.md", status="modified"),
                FileChange(filename="docs/api.rst", status="added"),
            ]
        )

        self.assertEqual(result.code_paths, ["src/app.py"])
        self.assertEqual(result.doc_paths, ["README.md", "docs/api.rst"])
        self.assertEqual(result.renames, [])
        self.assertEqual(result.deletions, [])

    def test_renamed_file_is_also_classified_by_new_path(self):
        result = classify_files(
            [FileChange(filename="src/new.py", status="renamed", previous_filename="src/old.py")]
        )

        self.assertEqual(result.code_paths, ["src/new.py"])
        pairs = result.rename_pairs()
        self.assertEqual(len(pairs), 1)
        self.assertEqual(pairs[0].old_path, "src/old.py")
        self.assertEqual(pairs[0].new_path, "src/new.py")

    def test_removed_files_only_land_in_deletions(self):
        result = classify_files(
            [
                FileChange(filename="docs/gone.md", status="removed"),
                FileChange(filename="src/gone.py", status="removed"),
            ]
        )

        self.assertEqual(result.code_files, [])
        self.assertEqual(result.doc_files, [])
        self.assertEqual([d.filename for d in result.deletions], ["docs/gone.md", "src/gone.py"])
        self.assertEqual(result.deleted_doc_paths, ["docs/gone.md"])

    def test_exclude_patterns_skip_classification(self):
        result = classify_files(
            [
                FileChange(filename="CHANGELOG.md", status="modified"),
                FileChange(filename="docs/archive/v1/old.md", status="modified"),
                FileChange(filename="docs/current.md", status="modified"),
            ],
            exclude_patterns=["CHANGELOG.md", "docs/archive/**"],
        )

        self.assertEqual(result.doc_paths, ["docs/current.md"])

    def test_rename_without_previous_name_has_no_pair(self):
        result = classify_files([FileChange(filename="a.py", status="renamed")])
        self.assertEqual(result.rename_pairs(), [])


class TestPatterns(unittest.TestCase):

    def test_single_star_stays_within_segment(self):
        self.assertTrue(matches_any("docs/a.md", ["docs/*.md"]))
        self.assertFalse(matches_any("docs/sub/a.md", ["docs/*.md"]))

    def test_double_star_spans_directories(self):
        self.assertTrue(matches_any("docs/sub/a.md", ["docs/**"]))

    def test_doc_extensions_are_case_insensitive(self):
        self.assertTrue(is_doc_file("README.MD"))
        self.assertFalse(is_doc_file("Makefile"))


if __name__ == "__main__":
    unittest.main()
