"""Tests for RepositoryIndex and the XML store behind it."""

import uuid
import xml.etree.ElementTree as ET
from unittest.mock import patch

import pytest

from ommrepo.domain import ContentHash, HashAlgorithm, PackageDescriptor
from ommrepo.exit_codes import CorruptIndexError, PersistFailedError
from ommrepo.infra.codec import encode_description
from ommrepo.domain import PackageDescription, PackageLogo
from ommrepo.services import RepositoryIndex


def make_descriptor(identifier, byte_size=100, **kwargs):
    return PackageDescriptor(
        identifier=identifier,
        archive_file_name=f"{identifier}.zip",
        byte_size=byte_size,
        content_hash=ContentHash(HashAlgorithm.XXH3, f"{byte_size:016x}"),
        **kwargs
    )


class TestOpen:

    def test_new_index_has_global_fields(self, index_path):
        index = RepositoryIndex.open(index_path, "My Mods", "/srv/mods")

        assert uuid.UUID(index.uuid).version == 4
        assert index.title == "My Mods"
        assert index.download_path == "/srv/mods"
        assert index.root_path == "/srv/mods"
        assert index.entry_count() == 0
        assert index.persisted_count == 0
        assert index.is_dirty
        assert not index_path.exists()  # nothing written before flush()

    def test_flush_writes_manifest_layout(self, index_path):
        index = RepositoryIndex.open(index_path, "My Mods", "/srv/mods")
        index.add_package(make_descriptor("a"))
        written = index.flush()

        assert written == index_path.stat().st_size
        root = ET.parse(index_path).getroot()
        assert root.tag == "Open_Mod_Manager_Repository"
        assert root.findtext("title") == "My Mods"
        assert root.findtext("downpath") == "/srv/mods"
        assert root.find("remotes").get("count") == "1"
        remote = root.find("remotes/remote")
        assert remote.get("ident") == "a"
        assert remote.get("file") == "a.zip"
        assert remote.get("bytes") == "100"
        assert remote.get("xxhsum") == f"{100:016x}"
        assert not index.is_dirty

    def test_uuid_is_stable_and_title_updates(self, index_path):
        """The UUID survives reopening; title and path follow the caller."""
        first = RepositoryIndex.open(index_path, "Old Title", "/srv/old")
        first.flush()

        second = RepositoryIndex.open(index_path, "New Title", "/srv/new path")

        assert second.uuid == first.uuid
        assert second.title == "New Title"
        assert second.download_path == "/srv/new%20path"
        assert second.is_dirty

    def test_reopen_without_changes_is_clean(self, index_path):
        RepositoryIndex.open(index_path, "Mods", "/srv/mods").flush()
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        assert not index.is_dirty

    def test_none_keeps_stored_values(self, index_path):
        RepositoryIndex.open(index_path, "Mods", "/srv/my mods").flush()

        index = RepositoryIndex.open(index_path)

        assert index.title == "Mods"
        assert index.root_path == "/srv/my mods"
        assert not index.is_dirty

    def test_blank_uuid_is_regenerated(self, index_path):
        index_path.write_text(
            "<Open_Mod_Manager_Repository><uuid> </uuid>"
            "<remotes count=\"0\"/></Open_Mod_Manager_Repository>"
        )
        index = RepositoryIndex.open(index_path, "Mods", "/srv")
        assert uuid.UUID(index.uuid)

    def test_not_xml_is_corrupt(self, index_path):
        index_path.write_text("this is not xml")
        with pytest.raises(CorruptIndexError):
            RepositoryIndex.open(index_path, "Mods", "/srv")

    def test_wrong_root_is_corrupt(self, index_path):
        index_path.write_text("<catalog><remotes/></catalog>")
        with pytest.raises(CorruptIndexError):
            RepositoryIndex.open(index_path, "Mods", "/srv")

    def test_record_without_checksum_is_corrupt(self, index_path):
        index_path.write_text(
            "<Open_Mod_Manager_Repository><remotes count=\"1\">"
            "<remote ident=\"a\" file=\"a.zip\" bytes=\"1\"/>"
            "</remotes></Open_Mod_Manager_Repository>"
        )
        with pytest.raises(CorruptIndexError) as excinfo:
            RepositoryIndex.open(index_path, "Mods", "/srv")
        assert excinfo.value.index_path == str(index_path)

    def test_record_with_bad_size_is_corrupt(self, index_path):
        index_path.write_text(
            "<Open_Mod_Manager_Repository><remotes>"
            "<remote ident=\"a\" file=\"a.zip\" bytes=\"many\" md5sum=\"00\"/>"
            "</remotes></Open_Mod_Manager_Repository>"
        )
        with pytest.raises(CorruptIndexError):
            RepositoryIndex.open(index_path, "Mods", "/srv")

    def test_duplicate_records_keep_the_later_one(self, index_path):
        index_path.write_text(
            "<Open_Mod_Manager_Repository><remotes count=\"2\">"
            "<remote ident=\"a\" file=\"old.zip\" bytes=\"1\" md5sum=\"00\"/>"
            "<remote ident=\"a\" file=\"new.zip\" bytes=\"2\" md5sum=\"11\"/>"
            "</remotes></Open_Mod_Manager_Repository>"
        )
        index = RepositoryIndex.open(index_path, "Mods", "/srv")

        assert index.entry_count() == 1
        assert index.get_entry("a").file_name == "new.zip"
        assert index.persisted_count == 1
        assert index.is_dirty

    def test_wrong_count_attribute_is_resynced(self, index_path):
        index_path.write_text(
            "<Open_Mod_Manager_Repository><uuid>u</uuid><title>t</title><downpath>/srv</downpath>"
            "<remotes count=\"7\">"
            "<remote ident=\"a\" file=\"a.zip\" bytes=\"1\" md5sum=\"00\"/>"
            "</remotes></Open_Mod_Manager_Repository>"
        )
        index = RepositoryIndex.open(index_path)
        assert index.persisted_count == 1
        assert index.is_dirty


class TestMutations:

    def test_round_trip_preserves_entries(self, index_path):
        """Every entry added is found again after flush and reload."""
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        for i in range(5):
            index.add_package(make_descriptor(f"mod-{i}", byte_size=100 + i))
        index.flush()

        reloaded = RepositoryIndex.open(index_path)

        assert reloaded.entry_count() == 5
        for i in range(5):
            entry = reloaded.get_entry(f"mod-{i}")
            assert entry.byte_size == 100 + i
            assert entry.content_hash == ContentHash(HashAlgorithm.XXH3, f"{100 + i:016x}")

    def test_add_same_identifier_replaces(self, index_path):
        """Identity is the identifier; a second add replaces the first."""
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        index.add_package(make_descriptor("a", byte_size=1))
        index.add_package(make_descriptor("a", byte_size=2))

        assert index.entry_count() == 1
        assert index.get_entry("a").byte_size == 2
        assert index.persisted_count == 1

        index.flush()
        root = ET.parse(index_path).getroot()
        assert len(root.findall("remotes/remote")) == 1

    def test_add_returns_entry_read_back(self, index_path):
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        entry = index.add_package(make_descriptor("a", custom_location="sub/", category="Maps"))

        assert entry.identifier == "a"
        assert entry.custom_location == "sub/"
        assert entry.category == "Maps"

    def test_remove_unknown_is_noop(self, index_path):
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        index.add_package(make_descriptor("a"))

        assert index.remove_package("missing") is False
        assert index.entry_count() == 1

    def test_remove_is_idempotent(self, index_path):
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        index.add_package(make_descriptor("a"))

        assert index.remove_package("a") is True
        assert index.remove_package("a") is False
        assert index.entry_count() == 0
        assert index.persisted_count == 0

    def test_count_matches_after_each_mutation(self, index_path):
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        index.add_package(make_descriptor("a"))
        index.add_package(make_descriptor("b"))
        assert index.persisted_count == index.entry_count() == 2
        index.remove_package("a")
        assert index.persisted_count == index.entry_count() == 1
        index.clear_all()
        assert index.persisted_count == index.entry_count() == 0

    def test_clear_all(self, index_path):
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        index.add_package(make_descriptor("a"))
        index.add_package(make_descriptor("b"))
        index.flush()

        index.clear_all()
        index.flush()

        reloaded = RepositoryIndex.open(index_path)
        assert reloaded.entry_count() == 0
        assert reloaded.all_entries() == []

    def test_optional_parts_serialized(self, index_path):
        payload, byte_length = encode_description("Hello\nworld")
        descriptor = make_descriptor(
            "a",
            dependencies="<dependencies><ident>base</ident></dependencies>",
            logo=PackageLogo("image/jpeg", "data:image/jpeg;base64,/9j/"),
            description=PackageDescription(payload, byte_length),
            custom_location="sub/",
        )
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        index.add_package(descriptor)
        index.flush()

        remote = ET.parse(index_path).getroot().find("remotes/remote")
        assert remote.findtext("url") == "sub/"
        assert remote.find("dependencies/ident").text == "base"
        assert remote.findtext("picture") == "data:image/jpeg;base64,/9j/"
        assert remote.find("description").get("bytes") == str(byte_length)

        details = RepositoryIndex.open(index_path).package_details("a")
        assert details['description'] == "Hello\nworld"
        assert details['logo_mime_type'] == "image/jpeg"
        assert "<ident>base</ident>" in details['dependencies']

    def test_package_details_unknown(self, index_path):
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        assert index.package_details("missing") is None

    def test_backing_path(self, index_path, tmp_path):
        index = RepositoryIndex.open(index_path, "Mods", str(tmp_path))
        plain = index.add_package(make_descriptor("a"))
        nested = index.add_package(make_descriptor("b", custom_location="sub/"))

        assert index.backing_path(plain) == tmp_path / "a.zip"
        assert index.backing_path(nested) == tmp_path / "sub" / "b.zip"


class TestFlush:

    def test_failed_flush_keeps_previous_file(self, index_path):
        """A failed write never leaves a truncated index behind."""
        index = RepositoryIndex.open(index_path, "Mods", "/srv/mods")
        index.add_package(make_descriptor("a"))
        index.flush()
        before = index_path.read_bytes()

        index.add_package(make_descriptor("b"))
        with patch('ommrepo.infra.manifest_store.os.replace', side_effect=OSError("disk full")):
            with pytest.raises(PersistFailedError):
                index.flush()

        assert index_path.read_bytes() == before
        assert index.is_dirty
        leftovers = [p for p in index_path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_flush_into_missing_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "repository.xml"
        RepositoryIndex.open(path, "Mods", "/srv").flush()
        assert path.exists()
