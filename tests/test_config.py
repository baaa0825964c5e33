import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError

import _test_path  # noqa: F401

from image_proxy.config import ProcessorConfig, load_config, load_profiles, parse_config
from image_proxy.errors import ConfigError


def _document(**overrides):
    document = {
        "server": {"port": 9000},
        "sources": {"default": {"type": "filesystem", "directory": "/tmp"}},
        "processors": {"default": {"maintain_aspect_ratio": True}},
        "routes": {"users": {"pattern": r"^/users/(?P<image_path>.+)$"}},
    }
    document.update(overrides)
    return document


class TestLoadProfiles(unittest.TestCase):
    def test_inherits_missing_fields_from_default(self):
        profiles = load_profiles({
            "default": {"max_image_width": 1000, "maintain_aspect_ratio": True},
            "thumbs": {"max_image_height": 200},
        }, ProcessorConfig)

        thumbs = profiles["thumbs"]
        self.assertEqual(thumbs.name, "thumbs")
        self.assertEqual(thumbs.max_image_width, 1000)
        self.assertEqual(thumbs.max_image_height, 200)
        self.assertTrue(thumbs.maintain_aspect_ratio)
        self.assertEqual(profiles["default"].max_image_height, 0)

    def test_explicit_false_wins_over_default(self):
        profiles = load_profiles({
            "default": {"maintain_aspect_ratio": True},
            "stretch": {"maintain_aspect_ratio": False},
        }, ProcessorConfig)
        self.assertFalse(profiles["stretch"].maintain_aspect_ratio)

    def test_without_default_uses_zero_values(self):
        profiles = load_profiles({"plain": {"grayscale_by_default": True}}, ProcessorConfig)
        self.assertEqual(list(profiles), ["plain"])
        self.assertEqual(profiles["plain"].image_compression_quality, 0)
        self.assertFalse(profiles["plain"].maintain_aspect_ratio)

    def test_empty_profile_is_a_copy_of_default(self):
        profiles = load_profiles({"default": {"max_blur_radius_percentage": 0.5}, "copy": None}, ProcessorConfig)
        self.assertEqual(profiles["copy"].max_blur_radius_percentage, 0.5)

    def test_profiles_are_immutable(self):
        profile = load_profiles({"default": {}}, ProcessorConfig)["default"]
        with self.assertRaises(ValidationError):
            profile.max_image_width = 10

    def test_unknown_field_is_rejected(self):
        with self.assertRaises(ConfigError):
            load_profiles({"default": {"max_widht": 10}}, ProcessorConfig)

    def test_invalid_value_is_rejected(self):
        with self.assertRaises(ConfigError):
            load_profiles({"default": {"image_compression_quality": 101}}, ProcessorConfig)

    def test_section_must_be_mapping(self):
        with self.assertRaises(ConfigError):
            load_profiles(["default"], ProcessorConfig)
        with self.assertRaises(ConfigError):
            load_profiles({"default": "yes"}, ProcessorConfig)


class TestParseConfig(unittest.TestCase):
    def test_valid_document(self):
        config = parse_config(_document())
        self.assertEqual(config.server.port, 9000)
        self.assertEqual(config.server.host, "0.0.0.0")
        route = config.routes["users"]
        self.assertEqual(route.source, "default")
        self.assertEqual(route.processor, "default")
        self.assertEqual(route.image_key_group, "image_path")
        self.assertEqual([r.name for r in config.served_routes()], ["users"])

    def test_routes_keep_document_order(self):
        config = parse_config(_document(routes={
            "b": {"pattern": r"^/b/(?P<image_path>.+)$"},
            "a": {"pattern": r"^/a/(?P<image_path>.+)$"},
        }))
        self.assertEqual([r.name for r in config.served_routes()], ["b", "a"])

    def test_default_route_without_pattern_is_template(self):
        config = parse_config(_document(
            sources={"disk": {"type": "filesystem", "directory": "/tmp"}},
            processors={"small": {"max_image_width": 100}},
            routes={
                "default": {"source": "disk", "processor": "small"},
                "users": {"pattern": r"^/users/(?P<image_path>.+)$"},
            },
        ))
        served = config.served_routes()
        self.assertEqual([r.name for r in served], ["users"])
        self.assertEqual(served[0].source, "disk")
        self.assertEqual(served[0].processor, "small")

    def test_undefined_source(self):
        routes = {"users": {"pattern": r"^/(?P<image_path>.+)$", "source": "missing"}}
        with self.assertRaises(ConfigError):
            parse_config(_document(routes=routes))

    def test_undefined_processor(self):
        routes = {"users": {"pattern": r"^/(?P<image_path>.+)$", "processor": "missing"}}
        with self.assertRaises(ConfigError):
            parse_config(_document(routes=routes))

    def test_bad_patterns(self):
        for pattern in [r"^/users/(?P<image_path>.+", r"^/users/(.+)$"]:
            with self.subTest(pattern=pattern):
                with self.assertRaises(ConfigError):
                    parse_config(_document(routes={"users": {"pattern": pattern}}))

    def test_custom_image_key_group(self):
        config = parse_config(_document(routes={
            "users": {"pattern": r"^/u/(?P<key>.+)$", "image_key_group": "key"},
        }))
        self.assertEqual(config.routes["users"].image_key_group, "key")

    def test_route_without_pattern(self):
        with self.assertRaises(ConfigError):
            parse_config(_document(routes={"users": {"source": "default"}}))

    def test_no_routes(self):
        with self.assertRaises(ConfigError):
            parse_config(_document(routes={}))

    def test_bad_server_section(self):
        with self.assertRaises(ConfigError):
            parse_config(_document(server={"port": "not-a-port"}))

    def test_not_a_mapping(self):
        with self.assertRaises(ConfigError):
            parse_config("just a string")


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_reads_yaml(self):
        path = self.tmp / "config.yaml"
        path.write_text(
            "server:\n"
            "  port: 8081\n"
            "sources:\n"
            "  default:\n"
            "    type: filesystem\n"
            f"    directory: {self.tmp}\n"
            "processors:\n"
            "  default:\n"
            "    maintain_aspect_ratio: true\n"
            "routes:\n"
            "  images:\n"
            "    pattern: '^/images/(?P<image_path>.+)$'\n",
            encoding="utf-8",
        )
        config = load_config(path)
        self.assertEqual(config.server.port, 8081)
        self.assertTrue(config.processors["default"].maintain_aspect_ratio)

    def test_malformed_yaml(self):
        path = self.tmp / "broken.yaml"
        path.write_text("routes: [unclosed\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(path)

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_config(self.tmp / "nope.yaml")


if __name__ == "__main__":
    unittest.main()
