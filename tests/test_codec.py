import json
import unittest

from templatevault.codec import (
    decode_sections,
    decode_tag_ids,
    decode_template,
    encode_template,
)
from templatevault.errors import DecodeError, EncodeError
from templatevault.models import Tag, Template, TemplateSection
from templatevault.schema import TEMPLATE_COLUMNS


def _as_row(values):
    return dict(zip(TEMPLATE_COLUMNS, values))


class TemplateCodecTests(unittest.TestCase):
    def _template(self, sections, tags=None):
        return Template(
            id="tpl_1",
            title="胸痛入院记录",
            sections=sections,
            disease="cardiology",
            template_type="admission",
            tags=tags if tags is not None else ["common", "emergency"],
            created_at=1700000000000,
            updated_at=1700000005000,
            is_favorite=True,
        )

    def test_round_trip_preserves_sections_and_tags(self):
        cases = [
            [],
            [TemplateSection("主诉", "胸痛2小时")],
            [
                TemplateSection("主诉", 'say "hello"\nnext line'),
                TemplateSection("现病史", "50% stenosis_of LAD \\ back\tslash"),
                TemplateSection("", ""),
            ],
        ]
        for sections in cases:
            with self.subTest(count=len(sections)):
                template = self._template(sections)
                decoded = decode_template(_as_row(encode_template(template)))
                self.assertEqual(decoded, template)

    def test_round_trip_with_no_tags(self):
        template = self._template([TemplateSection("a", "b")], tags=[])
        self.assertEqual(decode_template(_as_row(encode_template(template))), template)

    def test_sections_are_stored_as_readable_json(self):
        row = _as_row(encode_template(self._template([TemplateSection("主诉", "胸痛")])))

        self.assertIn("胸痛", row["sections"])
        self.assertEqual(json.loads(row["sections"]), [{"title": "主诉", "content": "胸痛"}])
        self.assertEqual(json.loads(row["tags"]), ["common", "emergency"])
        self.assertEqual(row["is_favorite"], 1)

    def test_encode_rejects_unserializable_section(self):
        template = self._template([TemplateSection("bad", object())])

        with self.assertRaises(EncodeError):
            encode_template(template)

    def test_encode_rejects_tags_that_are_not_a_list_of_strings(self):
        for tags in ("t1", ["t1", 2], {"t1": True}):
            with self.subTest(tags=tags):
                with self.assertRaises(EncodeError):
                    encode_template(self._template([], tags=tags))

    def test_encode_rejects_non_string_section_fields(self):
        cases = [
            [TemplateSection(None, "content")],
            [TemplateSection("title", 42)],
            [{"title": "plain dict", "content": "x"}],
        ]
        for sections in cases:
            with self.subTest(sections=sections):
                with self.assertRaises(EncodeError):
                    encode_template(self._template(sections))

    def test_encode_rejects_bad_timestamps_and_favorite_flag(self):
        for field, value in (
            ("created_at", None),
            ("updated_at", "1700000000000"),
            ("created_at", 1.5),
            ("is_favorite", "false"),
        ):
            with self.subTest(field=field, value=value):
                template = self._template([])
                setattr(template, field, value)
                with self.assertRaises(EncodeError):
                    encode_template(template)

    def test_encode_rejects_non_template(self):
        with self.assertRaises(EncodeError):
            encode_template({"id": "tpl_1"})

    def test_decode_malformed_sections_names_row_and_column(self):
        row = _as_row(encode_template(self._template([])))
        row["sections"] = "{not json"

        with self.assertRaises(DecodeError) as ctx:
            decode_template(row)

        self.assertEqual(ctx.exception.record_id, "tpl_1")
        self.assertEqual(ctx.exception.column, "sections")

    def test_decode_rejects_wrong_shapes(self):
        with self.assertRaises(DecodeError):
            decode_sections('{"title": "x"}')
        with self.assertRaises(DecodeError):
            decode_sections('[{"title": "only title"}]')
        with self.assertRaises(DecodeError):
            decode_tag_ids("[1, 2]")
        with self.assertRaises(DecodeError):
            decode_tag_ids("nope")


class TemplateModelTests(unittest.TestCase):
    def test_from_dict_uses_camel_case_wire_names(self):
        template = Template.from_dict(
            {
                "id": "tpl_1",
                "title": "模板",
                "sections": [{"title": "主诉", "content": "咳嗽"}],
                "disease": "respiratory",
                "templateType": "outpatient",
                "tags": ["common"],
                "createdAt": 1,
                "updatedAt": 2,
                "isFavorite": True,
            }
        )

        self.assertEqual(template.template_type, "outpatient")
        self.assertEqual(template.updated_at, 2)
        self.assertTrue(template.is_favorite)
        self.assertEqual(template.to_dict()["templateType"], "outpatient")

    def test_from_dict_requires_id_and_title(self):
        with self.assertRaises(ValueError):
            Template.from_dict({"id": "", "title": "x"})
        with self.assertRaises(ValueError):
            Template.from_dict({"id": "tpl_1", "title": "  "})
        with self.assertRaises(ValueError):
            Template.from_dict({"id": "   ", "title": "x"})
        with self.assertRaises(ValueError):
            Template.from_dict({"id": 7, "title": "x"})

    def test_from_dict_keeps_ids_verbatim(self):
        template = Template.from_dict({"id": " tpl_1 ", "title": " 模板 "})
        tag = Tag.from_dict({"id": "t1\t", "name": "common"})

        self.assertEqual(template.id, " tpl_1 ")
        self.assertEqual(template.title, " 模板 ")
        self.assertEqual(tag.id, "t1\t")

    def test_from_dict_parses_favorite_flag_strictly(self):
        cases = [
            (True, True),
            (False, False),
            (1, True),
            (0, False),
            ("true", True),
            ("false", False),
            ("False", False),
            ("0", False),
            ("yes", True),
            (None, False),
        ]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                template = Template.from_dict({"id": "tpl_1", "title": "x", "isFavorite": raw})
                self.assertIs(template.is_favorite, expected)

        for raw in ("maybe", 2, [], {}):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    Template.from_dict({"id": "tpl_1", "title": "x", "isFavorite": raw})

    def test_to_text_joins_sections(self):
        template = Template(
            id="tpl_1",
            title="模板",
            sections=[TemplateSection("主诉", "咳嗽"), TemplateSection("查体", "双肺清")],
        )

        self.assertEqual(template.to_text(), "主诉：咳嗽\n查体：双肺清")


if __name__ == "__main__":
    unittest.main()
