from django.test import SimpleTestCase

from apps.numbering.models import NumberingConfig, format_document_number


class FormatDocumentNumberTests(SimpleTestCase):
    def test_pads_short_numbers(self):
        self.assertEqual(format_document_number(7, padding_length=4), "0007")

    def test_never_truncates_wide_numbers(self):
        self.assertEqual(format_document_number(12345, padding_length=4), "12345")

    def test_prefix_and_suffix(self):
        self.assertEqual(format_document_number(1001, prefix="INV-", suffix="/24", padding_length=4), "INV-1001/24")

    def test_no_padding(self):
        self.assertEqual(format_document_number(5), "5")
        self.assertEqual(format_document_number(5, prefix=None, suffix=None, padding_length=None), "5")

    def test_config_format_number(self):
        cfg = NumberingConfig(prefix="BL-", suffix="", padding_length=3)
        self.assertEqual(cfg.format_number(1), "BL-001")
        self.assertEqual(cfg.format_number(1000), "BL-1000")
