"""
Tests for response utilities module.

Tests cover JSON serialization and the JSON/SVG response helpers.
"""

import json
from decimal import Decimal

import pytest

from pudim.shared.response_utils import (
    CACHE_CONTROL_ERROR,
    CACHE_CONTROL_PUBLIC,
    decimal_default,
    json_response,
    svg_response,
)


class TestDecimalDefault:
    def test_whole_decimal_becomes_int(self):
        result = decimal_default(Decimal("150"))
        assert result == 150
        assert isinstance(result, int)

    def test_fractional_decimal_becomes_float(self):
        assert decimal_default(Decimal("12.5")) == 12.5

    def test_other_types_raise(self):
        with pytest.raises(TypeError):
            decimal_default(object())


class TestJsonResponse:
    def test_serializes_decimals_from_dynamodb(self):
        response = json_response(200, {"score": Decimal("150"), "followers": Decimal("100")})

        assert response["statusCode"] == 200
        assert response["headers"]["Content-Type"] == "application/json"
        assert json.loads(response["body"]) == {"score": 150, "followers": 100}

    def test_extra_headers_are_merged(self):
        response = json_response(200, {}, headers={"Cache-Control": "no-cache"})

        assert response["headers"] == {"Content-Type": "application/json", "Cache-Control": "no-cache"}


class TestSvgResponse:
    def test_success_headers(self):
        response = svg_response("<svg/>")

        assert response["statusCode"] == 200
        assert response["body"] == "<svg/>"
        assert response["isBase64Encoded"] is False
        assert response["headers"]["Content-Type"] == "image/svg+xml"
        assert response["headers"]["Cache-Control"] == CACHE_CONTROL_PUBLIC

    def test_error_badges_expire_sooner(self):
        response = svg_response("<svg/>", error=True)

        assert response["statusCode"] == 200
        assert response["headers"]["Cache-Control"] == CACHE_CONTROL_ERROR
        assert response["headers"]["CDN-Cache-Control"] == "public, max-age=60"
