"""
Tests for Package.resolved parsing — versions 1, 2 and 3.
"""

from __future__ import annotations

import json

import pytest

from spm_swap.errors import MalformedManifestError, UnsupportedVersionError
from spm_swap.models.records import KIND_LOCAL, KIND_REGISTRY, DependencyRecord
from spm_swap.resolved.parser import parse_manifest, parse_manifest_file


V1 = {
    "object": {
        "pins": [
            {
                "package": "Alamofire",
                "repositoryURL": "https://github.com/Alamofire/Alamofire.git",
                "state": {"branch": None, "revision": "f96b619", "version": "5.4.3"},
            },
            {
                "package": "SnapKit",
                "repositoryURL": "https://github.com/SnapKit/SnapKit",
                "state": {"branch": "develop", "revision": "d458564", "version": None},
            },
        ]
    },
    "version": 1,
}

V2 = {
    "pins": [
        {
            "identity": "swift-log",
            "kind": "remoteSourceControl",
            "location": "https://github.com/apple/swift-log.git",
            "state": {"revision": "173f567", "version": "1.4.4"},
        },
        {
            "identity": "alpha",
            "kind": "remoteSourceControl",
            "location": "https://example.com/alpha.git",
            "state": {"revision": "abc123"},
        },
    ],
    "version": 2,
}


class TestVersions:

    def test_version_1(self):
        records = parse_manifest(json.dumps(V1))
        assert records == [
            DependencyRecord(
                name="Alamofire",
                repository_url="https://github.com/Alamofire/Alamofire.git",
                revision="f96b619",
                version="5.4.3",
            ),
            DependencyRecord(
                name="SnapKit",
                repository_url="https://github.com/SnapKit/SnapKit",
                revision="d458564",
            ),
        ]

    def test_version_2_keeps_declaration_order(self):
        records = parse_manifest(json.dumps(V2))
        assert [r.name for r in records] == ["swift-log", "alpha"]
        assert records[1].repository_url == "https://example.com/alpha.git"
        assert records[1].revision == "abc123"
        assert records[1].version is None

    def test_version_3_with_origin_hash(self):
        data = dict(V2, version=3, originHash="0f1e2d")
        assert parse_manifest(json.dumps(data)) == parse_manifest(json.dumps(V2))

    def test_version_at_top_of_file(self):
        text = '{"version": 2, "pins": []}'
        assert parse_manifest(text) == []

    def test_unknown_fields_are_ignored(self):
        data = json.loads(json.dumps(V2))
        data["futureField"] = {"x": 1}
        data["pins"][0]["mirror"] = "somewhere"
        data["pins"][0]["state"]["checksum"] = "deadbeef"
        assert len(parse_manifest(json.dumps(data))) == 2

    def test_non_git_pins_are_returned_with_their_kind(self):
        data = {
            "pins": [
                {"identity": "local", "kind": KIND_LOCAL, "location": "/src/local",
                 "state": {"revision": "aaa"}},
                {"identity": "mona.linkedlist", "kind": KIND_REGISTRY, "location": "",
                 "state": {"version": "1.0.0"}},
            ],
            "version": 2,
        }
        records = parse_manifest(json.dumps(data))
        assert [r.kind for r in records] == [KIND_LOCAL, KIND_REGISTRY]
        assert not any(r.is_remote for r in records)
        assert records[1].revision == ""


class TestErrors:

    @pytest.mark.parametrize("version", [None, 0, 4, "2", True, [2]])
    def test_unsupported_version(self, version):
        data = dict(V2)
        if version is None:
            data.pop("version")
        else:
            data["version"] = version
        with pytest.raises(UnsupportedVersionError):
            parse_manifest(json.dumps(data))

    def test_invalid_json(self):
        with pytest.raises(MalformedManifestError, match="Invalid JSON"):
            parse_manifest("{not json")

    def test_root_must_be_object(self):
        with pytest.raises(MalformedManifestError):
            parse_manifest("[1, 2]")

    def test_missing_pins(self):
        with pytest.raises(MalformedManifestError):
            parse_manifest('{"version": 2}')

    def test_missing_revision_on_remote_pin(self):
        data = json.loads(json.dumps(V2))
        del data["pins"][0]["state"]["revision"]
        with pytest.raises(MalformedManifestError, match="revision"):
            parse_manifest(json.dumps(data))

    def test_wrong_value_type(self):
        data = json.loads(json.dumps(V2))
        data["pins"][0]["location"] = 42
        with pytest.raises(MalformedManifestError):
            parse_manifest(json.dumps(data))

    def test_v1_missing_repository_url(self):
        data = json.loads(json.dumps(V1))
        del data["object"]["pins"][0]["repositoryURL"]
        with pytest.raises(MalformedManifestError):
            parse_manifest(json.dumps(data))

    def test_error_message_names_the_file(self, tmp_path):
        path = tmp_path / "Package.resolved"
        path.write_text('{"version": 9, "pins": []}', encoding="utf-8")
        with pytest.raises(UnsupportedVersionError) as excinfo:
            parse_manifest_file(path)
        assert str(path) in str(excinfo.value)
        assert excinfo.value.version == 9


class TestParseFile:

    def test_reads_file(self, tmp_path):
        path = tmp_path / "Package.resolved"
        path.write_text(json.dumps(V1), encoding="utf-8")
        assert [r.name for r in parse_manifest_file(path)] == ["Alamofire", "SnapKit"]

    def test_unreadable_file_is_malformed(self, tmp_path):
        with pytest.raises(MalformedManifestError):
            parse_manifest_file(tmp_path / "missing" / "Package.resolved")
