import sys
import types
import unittest
from unittest.mock import MagicMock

from driftwatch.services.collaborators import ScanCollaborators, load_collaborators
from driftwatch.services.exceptions import CollaboratorConfigurationError


class TestLoadCollaborators(unittest.TestCase):

    def setUp(self):
        module = types.ModuleType("driftwatch_test_factories")
        module.good = lambda: ScanCollaborators(
            codebase_index=MagicMock(),
            mapper=MagicMock(),
            verifier=MagicMock(),
            learning=MagicMock(),
            source_control=MagicMock(),
        )
        module.bad = lambda: object()
        sys.modules[module.__name__] = module
        self.addCleanup(sys.modules.pop, module.__name__, None)

    def test_loads_factory(self):
        collaborators = load_collaborators("driftwatch_test_factories:good")
        self.assertIsInstance(collaborators, ScanCollaborators)
        self.assertIsNone(collaborators.extractor)
        self.assertIsNone(collaborators.check_runs)

    def test_missing_path(self):
        with self.assertRaises(CollaboratorConfigurationError):
            load_collaborators(None)

    def test_malformed_path(self):
        with self.assertRaises(CollaboratorConfigurationError):
            load_collaborators("driftwatch_test_factories.good")

    def test_unknown_module_or_attribute(self):
        with self.assertRaises(CollaboratorConfigurationError):
            load_collaborators("driftwatch_no_such_module:factory")
        with self.assertRaises(CollaboratorConfigurationError):
            load_collaborators("driftwatch_test_factories:missing")

    def test_wrong_return_type(self):
        with self.assertRaises(CollaboratorConfigurationError):
            load_collaborators("driftwatch_test_factories:bad")


if __name__ == "__main__":
    unittest.main()
