import json
import os
import tempfile
import unittest

import main


SAMPLE_REQUEST = os.path.join(os.path.dirname(__file__), "..", "samples", "request.json")


class MainCliTests(unittest.TestCase):
    def _write_config(self, tmpdir, daily_limit=10):
        path = os.path.join(tmpdir, "config.yaml")
        with open(path, "w") as f:
            f.write(f"quota:\n  daily_limit: {daily_limit}\n  db_path: {os.path.join(tmpdir, 'usage.db')}\n")
        return path

    def test_offline_run_writes_fallback_response(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output = os.path.join(tmpdir, "response.json")
            exit_code = main.main(
                [
                    SAMPLE_REQUEST,
                    "--user-id", "demo-user",
                    "--config", self._write_config(tmpdir),
                    "--offline",
                    "--seed", "7",
                    "--output", output,
                ]
            )

            self.assertEqual(exit_code, 0)
            with open(output) as f:
                response = json.load(f)

        self.assertTrue(response["success"])
        self.assertTrue(response["usedFallback"])
        self.assertEqual(len(response["workouts"]), 2)

    def test_unreachable_quota_store_still_generates(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = os.path.join(tmpdir, "not-a-dir")
            with open(blocker, "w") as f:
                f.write("x")
            config = os.path.join(tmpdir, "config.yaml")
            with open(config, "w") as f:
                f.write(f"quota:\n  db_path: {os.path.join(blocker, 'usage.db')}\n")
            output = os.path.join(tmpdir, "response.json")

            exit_code = main.main(
                [SAMPLE_REQUEST, "--user-id", "demo-user", "--config", config, "--offline", "--output", output]
            )

            self.assertEqual(exit_code, 0)
            with open(output) as f:
                response = json.load(f)

        self.assertTrue(response["success"])
        self.assertEqual(len(response["workouts"]), 2)

    def test_user_mismatch_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            exit_code = main.main(
                [SAMPLE_REQUEST, "--user-id", "intruder", "--config", self._write_config(tmpdir), "--offline"]
            )
        self.assertEqual(exit_code, 2)

    def test_exhausted_quota_exits_nonzero(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = self._write_config(tmpdir, daily_limit=1)
            args = [SAMPLE_REQUEST, "--user-id", "demo-user", "--config", config, "--offline",
                    "--output", os.path.join(tmpdir, "out.json")]

            self.assertEqual(main.main(args), 0)
            self.assertEqual(main.main(args), 1)


if __name__ == "__main__":
    unittest.main()
