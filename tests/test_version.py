"""Tests for uelsp.version: EngineVersion and parse_version."""
from __future__ import annotations


class TestEngineVersion:
    def test_ordering_is_lexicographic(self):
        from uelsp.version import EngineVersion
        versions = [EngineVersion(5, 1, 0), EngineVersion(4, 27, 2),
                    EngineVersion(5, 3, 1), EngineVersion(5, 3, 0)]
        assert sorted(versions) == [EngineVersion(4, 27, 2), EngineVersion(5, 1, 0),
                                    EngineVersion(5, 3, 0), EngineVersion(5, 3, 1)]

    def test_install_path_ignored_in_comparison(self):
        from uelsp.version import EngineVersion
        a = EngineVersion(5, 3, 0, '/opt/UE_5.3')
        b = EngineVersion(5, 3, 0, '/somewhere/else')
        assert a == b
        assert hash(a) == hash(b)
        assert not a < b and not b < a

    def test_with_install_path_keeps_version(self):
        from uelsp.version import EngineVersion
        v = EngineVersion(5, 2, 1).with_install_path('/opt/UE_5.2')
        assert (v.major, v.minor, v.patch) == (5, 2, 1)
        assert v.install_path == '/opt/UE_5.2'

    def test_str(self):
        from uelsp.version import EngineVersion
        assert str(EngineVersion(5, 3)) == '5.3.0'

    def test_is_legacy(self):
        from uelsp.version import EngineVersion
        assert EngineVersion(4, 27).is_legacy
        assert not EngineVersion(5, 0).is_legacy

    def test_default_version(self):
        from uelsp.version import DEFAULT_VERSION, EngineVersion
        assert DEFAULT_VERSION == EngineVersion(5, 3, 0)
        assert DEFAULT_VERSION.install_path == ''


class TestParseVersion:
    def test_major_minor(self):
        from uelsp.version import EngineVersion, parse_version
        assert parse_version('5.3') == EngineVersion(5, 3, 0)

    def test_with_patch(self):
        from uelsp.version import EngineVersion, parse_version
        assert parse_version('4.27.2') == EngineVersion(4, 27, 2)

    def test_embedded_in_text(self):
        from uelsp.version import EngineVersion, parse_version
        assert parse_version('UE_5.1 (custom build)') == EngineVersion(5, 1, 0)

    def test_no_version(self):
        from uelsp.version import parse_version
        assert parse_version('{8E1F2E3A-0000-0000-0000-000000000000}') is None
        assert parse_version('') is None
        assert parse_version(None) is None
