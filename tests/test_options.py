"""Tests for write option and content header transformation."""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from drive_gcs.base import ContentHeaders, Visibility, WriteOptions
from drive_gcs.options import (
    expires_at,
    parse_duration,
    transform_content_headers,
    transform_write_options
)


class TestWriteOptions:

    def test_unset_fields_are_detected(self):
        options = WriteOptions()
        assert not options.is_set("visibility")
        assert not options.is_set("content_type")

    def test_set_fields_are_detected(self):
        options = WriteOptions(visibility="public", content_type="text/plain")
        assert options.is_set("visibility")
        assert options.visibility is Visibility.PUBLIC
        assert options.is_set("content_type")

    def test_extra_options_pass_through(self):
        options = WriteOptions(cache_control="no-cache")
        assert options.passthrough == {"cache_control": "no-cache"}

    def test_options_are_immutable(self):
        options = WriteOptions(content_type="text/plain")
        with pytest.raises(ValidationError):
            options.content_type = "application/json"

    def test_invalid_visibility_rejected(self):
        with pytest.raises(ValidationError):
            WriteOptions(visibility="shared")


class TestTransformWriteOptions:

    def test_defaults_to_configured_visibility(self):
        result = transform_write_options(None, Visibility.PRIVATE, using_uniform_acl=False)
        assert result == {"metadata": {}, "predefined_acl": "private"}

    def test_public_visibility_maps_to_public_read(self):
        result = transform_write_options(None, Visibility.PUBLIC, using_uniform_acl=False)
        assert result["predefined_acl"] == "publicRead"

    def test_explicit_visibility_overrides_default(self):
        options = WriteOptions(visibility="public")
        result = transform_write_options(options, Visibility.PRIVATE, using_uniform_acl=False)
        assert result["predefined_acl"] == "publicRead"

    def test_no_acl_hint_for_uniform_buckets(self):
        options = WriteOptions(visibility="public")
        result = transform_write_options(options, Visibility.PRIVATE, using_uniform_acl=True)
        assert "predefined_acl" not in result
        assert result == {"metadata": {}}

    def test_content_type_is_top_level(self):
        options = WriteOptions(content_type="application/json")
        result = transform_write_options(options, Visibility.PRIVATE, using_uniform_acl=True)
        assert result["content_type"] == "application/json"
        assert result["metadata"] == {}

    def test_other_content_headers_are_nested(self):
        options = WriteOptions(
            content_disposition="attachment; filename=report.pdf",
            content_encoding="gzip",
            content_language="en"
        )
        result = transform_write_options(options, Visibility.PRIVATE, using_uniform_acl=True)
        assert result["metadata"] == {
            "content_disposition": "attachment; filename=report.pdf",
            "content_encoding": "gzip",
            "content_language": "en",
        }
        assert "content_type" not in result

    def test_passthrough_options_are_kept(self):
        options = WriteOptions(cache_control="public, max-age=60")
        result = transform_write_options(options, Visibility.PRIVATE, using_uniform_acl=True)
        assert result["cache_control"] == "public, max-age=60"

    def test_computed_options_are_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger="drive_gcs.options")
        transform_write_options(None, Visibility.PRIVATE, using_uniform_acl=False)
        assert "drive-gcs write options" in caplog.text


class TestTransformContentHeaders:

    def test_no_headers(self):
        assert transform_content_headers(None) == {}
        assert transform_content_headers(ContentHeaders()) == {}

    def test_headers_are_mapped(self):
        headers = ContentHeaders(content_type="application/pdf", content_disposition="inline")
        assert transform_content_headers(headers) == {
            "response_type": "application/pdf",
            "response_disposition": "inline",
        }

    def test_omitted_headers_are_not_defaulted(self):
        headers = ContentHeaders(content_disposition="attachment")
        assert transform_content_headers(headers) == {"response_disposition": "attachment"}


class TestDurations:

    @pytest.mark.parametrize("expression, expected", [
        ("6 days", timedelta(days=6)),
        ("6days", timedelta(days=6)),
        ("2h", timedelta(hours=2)),
        ("30 mins", timedelta(minutes=30)),
        ("1.5 weeks", timedelta(days=10, hours=12)),
        ("500ms", timedelta(milliseconds=500)),
        ("45", timedelta(seconds=45)),
    ])
    def test_expressions(self, expression, expected):
        assert parse_duration(expression) == expected

    def test_numbers_are_seconds(self):
        assert parse_duration(90) == timedelta(seconds=90)
        assert parse_duration(1.5) == timedelta(seconds=1.5)

    def test_timedelta_is_returned_as_is(self):
        assert parse_duration(timedelta(hours=1)) == timedelta(hours=1)

    @pytest.mark.parametrize("expression", ["soon", "5 parsecs", "", -5, True])
    def test_invalid_expressions(self, expression):
        with pytest.raises(ValueError):
            parse_duration(expression)

    def test_expiry_defaults_to_six_days(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert expires_at(None, now=now) == datetime(2024, 1, 7, tzinfo=timezone.utc)

    def test_expiry_is_relative_to_now(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert expires_at("2h", now=now) == datetime(2024, 1, 1, 2, tzinfo=timezone.utc)
