"""Tests for canonical request construction."""

import pytest

from sigv4_http.canonical import (
    PayloadHash,
    build_canonical_request,
    canonical_headers,
    canonical_query_string,
    canonical_uri,
    normalize_header_value,
    remove_dot_segments,
    resolve_payload_hash,
    signed_headers,
    uri_encode,
)
from sigv4_http.request import UnsignedRequest


class TestUriEncode:
    def test_unreserved_characters_untouched(self):
        value = "ABCXYZabcxyz0123456789-._~"
        assert uri_encode(value) == value

    @pytest.mark.parametrize(
        "raw, encoded",
        [
            ("$", "%24"),
            (" ", "%20"),
            ("/", "%2F"),
            ("+", "%2B"),
            ("*", "%2A"),
            ("=", "%3D"),
            ("%20", "%2520"),
            ("ü", "%C3%BC"),
        ],
    )
    def test_reserved_characters_encoded(self, raw, encoded):
        assert uri_encode(raw) == encoded


class TestCanonicalUri:
    def test_empty_path(self):
        assert canonical_uri("") == "/"
        assert canonical_uri("", s3=True) == "/"

    def test_root(self):
        assert canonical_uri("/") == "/"

    def test_segments_encoded_slashes_kept(self):
        assert canonical_uri("/test$file.text", s3=True) == "/test%24file.text"
        assert canonical_uri("/a b/c:d", s3=True) == "/a%20b/c%3Ad"

    def test_already_encoded_path_is_encoded_again(self):
        assert canonical_uri("/my%20doc") == "/my%2520doc"

    def test_s3_path_is_encoded_once(self):
        assert canonical_uri("/my%20doc", s3=True) == "/my%20doc"
        assert canonical_uri("/a%2Fb/c%24", s3=True) == "/a%2Fb/c%24"
        assert canonical_uri("/my doc", s3=True) == "/my%20doc"

    def test_normalization(self):
        assert canonical_uri("/a/./b/../c//d/") == "/a/c/d/"

    def test_without_normalization_keeps_dot_segments(self):
        assert canonical_uri("/a/./b/../c", s3=True) == "/a/./b/../c"

    @pytest.mark.edge_case
    def test_parent_above_root(self):
        assert remove_dot_segments("/../..") == "/"


class TestCanonicalQueryString:
    def test_empty(self):
        assert canonical_query_string("") == ""

    def test_sorted_by_key_then_value(self):
        assert canonical_query_string("b=2&a=2&a=1") == "a=1&a=2&b=2"

    def test_key_case_sorts_uppercase_first(self):
        assert canonical_query_string("param=1&Param=2") == "Param=2&param=1"

    def test_key_without_value(self):
        assert canonical_query_string("acl") == "acl="
        assert canonical_query_string("delete=&acl") == "acl=&delete="

    def test_values_reencoded(self):
        assert canonical_query_string("prefix=photos/2024&q=a%20b") == (
            "prefix=photos%2F2024&q=a%20b"
        )

    def test_plus_is_space(self):
        assert canonical_query_string("q=a+b") == "q=a%20b"

    def test_encoded_key(self):
        assert canonical_query_string("x-id=1&%24key=v") == "%24key=v&x-id=1"


class TestCanonicalHeaders:
    def test_whitespace_collapsed(self):
        assert normalize_header_value("  a   b \t c  ") == "a b c"

    def test_lowercased_and_sorted(self):
        headers = [("X-Amz-Date", "20130524T000000Z"), ("Host", "example.com")]

        assert canonical_headers(headers) == (
            "host:example.com\nx-amz-date:20130524T000000Z\n"
        )
        assert signed_headers(headers) == "host;x-amz-date"

    def test_repeated_values_comma_joined(self):
        headers = [("X-Multi", "one"), ("Host", "h"), ("x-multi", " two  three ")]

        assert canonical_headers(headers) == "host:h\nx-multi:one,two three\n"
        assert signed_headers(headers) == "host;x-multi"

    def test_name_case_insensitive(self):
        assert canonical_headers([("Content-Type", "text/plain")]) == canonical_headers(
            [("content-type", "text/plain")]
        )


class TestPayloadHash:
    def test_computed_from_body(self):
        request = UnsignedRequest(method="PUT", url="https://example.com/", body=b"abc")

        payload = resolve_payload_hash(request)

        assert not payload.declared
        assert payload.value == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_declared_header_wins(self):
        request = UnsignedRequest(
            method="PUT",
            url="https://example.com/",
            headers=(("X-Amz-Content-SHA256", "UNSIGNED-PAYLOAD"),),
            body=b"abc",
        )

        payload = resolve_payload_hash(request)

        assert payload == PayloadHash.declare("UNSIGNED-PAYLOAD")


class TestBuildCanonicalRequest:
    def test_host_added_from_url(self):
        request = UnsignedRequest(method="get", url="https://example.com:8443/path?b=1&a=2")

        canonical = build_canonical_request(request, PayloadHash.compute(b""))

        lines = canonical.text.split("\n")
        assert lines[0] == "GET"
        assert lines[1] == "/path"
        assert lines[2] == "a=2&b=1"
        assert lines[3] == "host:example.com:8443"
        assert canonical.signed_headers == "host"

    def test_default_port_dropped_from_host(self):
        request = UnsignedRequest(method="GET", url="https://example.com:443/")

        canonical = build_canonical_request(request)

        assert "host:example.com\n" in canonical.text

    def test_explicit_host_header_used(self):
        request = UnsignedRequest(
            method="GET",
            url="http://127.0.0.1:9000/bucket",
            headers=(("Host", "bucket.internal"),),
        )

        canonical = build_canonical_request(request)

        assert "host:bucket.internal\n" in canonical.text
        assert "127.0.0.1" not in canonical.text

    def test_declared_hash_not_recomputed(self):
        request = UnsignedRequest(
            method="PUT",
            url="https://example.com/",
            headers=(("x-amz-content-sha256", "STREAMING-AWS4-HMAC-SHA256-PAYLOAD"),),
            body=b"chunked",
        )

        canonical = build_canonical_request(request)

        assert canonical.payload_hash.declared
        assert canonical.text.endswith("\nSTREAMING-AWS4-HMAC-SHA256-PAYLOAD")
        assert "x-amz-content-sha256" in canonical.signed_headers
