import tempfile
import unittest
from pathlib import Path

import yaml

from helpers import write_bundled_font, write_image
from memebot.catalog import ConfigurationError, build_catalog, load_catalog
from memebot.commands import parse_command
from memebot.models import DEFAULT_FONT_SIZE


class BuildCatalogTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        write_image(self.base / "first.png", (800, 400))
        write_image(self.base / "second.png", (200, 100))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_defaults_fill_missing_keys(self) -> None:
        catalog = build_catalog([{"filename": "first.png", "font": "missing.ttf"}], self.base)
        (template,) = catalog.templates
        self.assertEqual(template.name, "first")
        self.assertEqual(template.scale.y, DEFAULT_FONT_SIZE)
        self.assertEqual(
            (template.region.left, template.region.top, template.region.right, template.region.bottom),
            (0, 0, 800, 400),
        )
        self.assertEqual(template.center.x, 400)
        self.assertEqual(template.center.y, 200)
        self.assertEqual(template.text_prefix, "")
        self.assertEqual(template.text_suffix, "")
        self.assertIsNone(template.command)
        self.assertFalse(template.is_default)
        self.assertEqual(template.image.mode, "RGBA")
        self.assertTrue(template.font_key.endswith("missing.ttf"))

    def test_recognized_keys_are_applied(self) -> None:
        catalog = build_catalog(
            [
                {
                    "filename": "first.png",
                    "font": "missing.ttf",
                    "font_size": 40,
                    "left": 100,
                    "top": 50,
                    "right": 500,
                    "bottom": 150,
                    "text_prefix": "DID YOU JUST SAY ",
                    "text_suffix": "?",
                    "command": "Say",
                    "is_default": True,
                }
            ],
            self.base,
        )
        (template,) = catalog.templates
        self.assertEqual(template.scale.x, 40)
        self.assertEqual(template.center.x, 300)
        self.assertEqual(template.center.y, 100)
        self.assertEqual(template.text_prefix, "DID YOU JUST SAY ")
        self.assertEqual(template.text_suffix, "?")
        self.assertIs(catalog.find("say"), template)
        self.assertIs(catalog.default(), template)

    def test_unknown_and_mistyped_keys_are_ignored(self) -> None:
        with self.assertLogs("memebot.catalog", level="WARNING") as logs:
            catalog = build_catalog(
                [
                    {
                        "filename": "first.png",
                        "font": "missing.ttf",
                        "font_size": "big",
                        "left": -5,
                        "right": True,
                        "is_default": "yes",
                        "colour": "red",
                    }
                ],
                self.base,
            )
        (template,) = catalog.templates
        self.assertEqual(template.scale.y, DEFAULT_FONT_SIZE)
        self.assertEqual(template.region.left, 0)
        self.assertEqual(template.region.right, 800)
        self.assertFalse(template.is_default)
        joined = "\n".join(logs.output)
        self.assertIn("colour", joined)
        self.assertIn("font_size", joined)

    def test_region_is_clamped_to_image(self) -> None:
        catalog = build_catalog(
            [{"filename": "second.png", "font": "missing.ttf", "left": 50, "right": 900, "bottom": 1000}],
            self.base,
        )
        region = catalog.templates[0].region
        self.assertEqual((region.left, region.top, region.right, region.bottom), (50, 0, 200, 100))

    def test_entries_without_usable_image_are_skipped(self) -> None:
        catalog = build_catalog(
            [
                {"font": "missing.ttf", "command": "nofile"},
                {"filename": "absent.png", "font": "missing.ttf", "command": "absent"},
                "not a mapping",
                {"filename": "first.png", "font": "missing.ttf", "command": "ok"},
            ],
            self.base,
        )
        self.assertEqual([template.command for template in catalog.templates], ["ok"])

    def test_entry_without_font_is_skipped_until_a_font_loads(self) -> None:
        catalog = build_catalog(
            [
                {"filename": "first.png", "command": "first"},
                {"filename": "second.png", "font": "missing.ttf", "command": "second"},
                {"filename": "second.png", "command": "third"},
            ],
            self.base,
        )
        self.assertEqual([template.command for template in catalog.templates], ["second"])

    def test_entry_without_font_reuses_last_loaded_font(self) -> None:
        font_path = write_bundled_font(self.base / "bundled.ttf")
        if font_path is None:
            self.skipTest("Pillow build has no embedded FreeType font")
        catalog = build_catalog(
            [
                {"filename": "first.png", "font": "bundled.ttf", "command": "first"},
                {"filename": "second.png", "command": "second"},
            ],
            self.base,
        )
        first, second = catalog.templates
        self.assertEqual(first.font_key, second.font_key)
        self.assertIn(first.font_key, catalog.fonts)

    def test_shared_image_is_decoded_once(self) -> None:
        catalog = build_catalog(
            [
                {"filename": "first.png", "font": "missing.ttf", "command": "a"},
                {"filename": "first.png", "font": "missing.ttf", "command": "b"},
            ],
            self.base,
        )
        first, second = catalog.templates
        self.assertIs(first.image, second.image)
        self.assertEqual(len(catalog.images), 1)

    def test_first_entry_wins_for_shared_command(self) -> None:
        catalog = build_catalog(
            [
                {"filename": "first.png", "font": "missing.ttf", "command": "foo"},
                {"filename": "second.png", "font": "missing.ttf", "command": "foo"},
            ],
            self.base,
        )
        self.assertIs(catalog.find("foo"), catalog.templates[0])
        self.assertIs(catalog.find("FOO"), catalog.templates[0])
        self.assertIsNone(catalog.default())

    def test_first_default_wins(self) -> None:
        catalog = build_catalog(
            [
                {"filename": "first.png", "font": "missing.ttf", "command": "a"},
                {"filename": "second.png", "font": "missing.ttf", "is_default": True},
                {"filename": "first.png", "font": "missing.ttf", "is_default": True},
            ],
            self.base,
        )
        self.assertIs(catalog.default(), catalog.templates[1])

    def test_resolve_prefers_trigger_then_default(self) -> None:
        catalog = build_catalog(
            [
                {"filename": "first.png", "font": "missing.ttf", "command": "foo"},
                {"filename": "second.png", "font": "missing.ttf", "is_default": True},
            ],
            self.base,
        )
        by_trigger = catalog.resolve(parse_command(None, True, "foo some text"))
        self.assertIs(by_trigger.template, catalog.templates[0])
        self.assertEqual(by_trigger.text, "some text")
        self.assertTrue(by_trigger.by_trigger)

        fallback = catalog.resolve(parse_command(None, True, "bar some text"))
        self.assertIs(fallback.template, catalog.templates[1])
        self.assertEqual(fallback.text, "bar some text")
        self.assertFalse(fallback.by_trigger)

        empty = catalog.resolve(parse_command(7, False, "<@7>"))
        self.assertIs(empty.template, catalog.templates[1])

    def test_resolve_without_default_returns_none(self) -> None:
        catalog = build_catalog([{"filename": "first.png", "font": "missing.ttf", "command": "foo"}], self.base)
        self.assertIsNone(catalog.resolve(parse_command(None, True, "bar")))

    def test_fatal_documents(self) -> None:
        for document in (None, {"filename": "first.png"}, [], [{"filename": "absent.png", "font": "x.ttf"}]):
            with self.subTest(document=document):
                with self.assertRaises(ConfigurationError):
                    build_catalog(document, self.base)


class LoadCatalogTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        (self.base / "images").mkdir()
        write_image(self.base / "images" / "meme.png")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_paths_resolve_relative_to_config_file(self) -> None:
        config = self.base / "memes.yml"
        config.write_text(
            yaml.safe_dump([{"filename": "images/meme.png", "font": "fonts/missing.ttf", "command": "meme"}]),
            encoding="utf-8",
        )
        catalog = load_catalog(config)
        self.assertEqual(len(catalog), 1)
        self.assertEqual(catalog.templates[0].font_key, (self.base / "fonts" / "missing.ttf").as_posix())

    def test_invalid_yaml_is_fatal(self) -> None:
        config = self.base / "memes.yml"
        config.write_text("- filename: [unclosed\n", encoding="utf-8")
        with self.assertRaises(ConfigurationError):
            load_catalog(config)

    def test_missing_file_is_fatal(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_catalog(self.base / "nope.yml")


if __name__ == "__main__":
    unittest.main()
