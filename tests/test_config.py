from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from padelmotion.analysis.trajectory import TrajectoryParams
from padelmotion.config.app_config import AppPaths, HostInventory
from padelmotion.config.runtime import CaptureConfig, config_from_mapping, load_config, save_config


class RuntimeConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = CaptureConfig()
        self.assertEqual(cfg.sample_rate_hz, 60.0)
        self.assertEqual(cfg.trajectory_params(), TrajectoryParams())

    def test_nested_blocks_and_unknown_keys(self) -> None:
        cfg = config_from_mapping(
            {
                "capture": {"sample_rate_hz": 100},
                "trajectory": {"spring_constant": 1.5, "scale": 4.0},
                "relay": {"reply_timeout_s": 5},
                "something_else": True,
            }
        )
        self.assertEqual(cfg.sample_rate_hz, 100.0)
        self.assertEqual(cfg.spring_constant, 1.5)
        self.assertEqual(cfg.position_scale, 4.0)
        self.assertEqual(cfg.relay_reply_timeout_s, 5.0)

    def test_sanitized_clamps_values(self) -> None:
        cfg = config_from_mapping({"sample_rate_hz": 0, "damping": 3.0, "noise_floor": -1})
        self.assertEqual(cfg.sample_rate_hz, 1.0)
        self.assertEqual(cfg.damping, 1.0)
        self.assertEqual(cfg.noise_floor, 0.0)

    def test_load_missing_and_invalid_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            self.assertEqual(load_config(root / "missing.yaml"), CaptureConfig())
            self.assertEqual(load_config(None), CaptureConfig())

            bad = root / "bad.yaml"
            bad.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_config(bad)

    def test_save_and_load_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg" / "padelmotion.yaml"
            cfg = CaptureConfig(sample_rate_hz=50.0, damping=0.9, position_scale=2.0)
            save_config(cfg, path)
            self.assertEqual(load_config(path), cfg)

    def test_shipped_config_loads(self) -> None:
        cfg = load_config(AppPaths().config_dir / "padelmotion.yaml")
        self.assertEqual(cfg, CaptureConfig())


class AppConfigTests(unittest.TestCase):
    def test_env_overrides_paths(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            env = {"PADELMOTION_DATA_ROOT": tmp, "PADELMOTION_LOG_DIR": os.path.join(tmp, "l")}
            with mock.patch.dict(os.environ, env):
                paths = AppPaths()
                self.assertEqual(paths.data_root, Path(tmp))
                self.assertEqual(paths.sessions, Path(tmp) / "sessions")
                paths.ensure()
                self.assertTrue(paths.exports.is_dir())
                self.assertTrue(paths.logs.is_dir())

    def test_host_inventory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            inventory = HostInventory(Path(tmp) / "hosts.yaml")
            self.assertEqual(inventory.list_hosts(), [])
            self.assertIsNone(inventory.find())

            inventory.save_hosts(
                [
                    {"name": "a", "host": "10.0.0.1", "user": "padel"},
                    {"name": "b", "host": "10.0.0.2", "port": 2222, "listener_args": "--replay x.jsonl"},
                ]
            )
            first = inventory.find()
            assert first is not None
            self.assertEqual(first.name, "a")
            b = inventory.find("b")
            assert b is not None
            self.assertEqual(b.port, 2222)
            self.assertEqual(b.listener_args, "--replay x.jsonl")
            remote = b.to_remote_host()
            self.assertEqual((remote.host, remote.port), ("10.0.0.2", 2222))
            self.assertIsNone(inventory.find("missing"))

    def test_shipped_hosts_file_parses(self) -> None:
        inventory = HostInventory()
        hosts = inventory.list_hosts()
        self.assertTrue(hosts)
        self.assertEqual(inventory.to_host_config(hosts[0]).listener, "padelmotion-listener")


if __name__ == "__main__":
    unittest.main()
