import unittest

from app import create_app
from app.extensions import api
from app.models import TimetableSave
from config import TestConfig
from test_api import DatabaseTestCase


class AppFactoryTestCase(unittest.TestCase):
    def test_factory_can_build_several_apps(self) -> None:
        first = create_app(TestConfig)
        second = create_app(TestConfig)
        self.assertIsNot(first, second)
        registered = [namespace.name for namespace in api.namespaces]
        self.assertEqual(registered.count("blocks"), 1)
        for app in (first, second):
            response = app.test_client().get("/api/health")
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.get_json()["status"], "ok")


class CliTestCase(DatabaseTestCase):
    def test_autofill_command_prints_the_week(self) -> None:
        runner = self.app.test_cli_runner()
        result = runner.invoke(args=["autofill", "--level", "ce1"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Lundi", result.output)
        self.assertNotIn("Mercredi", result.output)
        self.assertIn("séance(s) générée(s)", result.output)

    def test_autofill_command_rejects_unknown_level(self) -> None:
        result = self.app.test_cli_runner().invoke(args=["autofill", "--level", "6e"])
        self.assertNotEqual(result.exit_code, 0)

    def test_seed_command(self) -> None:
        runner = self.app.test_cli_runner()
        result = runner.invoke(args=["seed"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(TimetableSave.query.count(), 1)
        result = runner.invoke(args=["seed"])
        self.assertIn("existe déjà", result.output)
