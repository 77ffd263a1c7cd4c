"""Tests for catalog/HAL record parsing."""

import pytest

from lab_explorer.models.records import (
    PersonDetail,
    Project,
    ProjectDetail,
    Publication,
    Researcher,
    ranked,
    split_names,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestSplitNames:
    def test_trims_and_drops_blanks(self):
        assert split_names(" Lab A , , Lab B,") == ["Lab A", "Lab B"]

    def test_dedupes_keeping_first(self):
        assert split_names("ANR, EU, ANR") == ["ANR", "EU"]

    def test_empty_values(self):
        assert split_names(None) == []
        assert split_names("") == []

    def test_accepts_lists(self):
        assert split_names(["Lab A", " Lab B "]) == ["Lab A", "Lab B"]


class TestRanked:
    def test_sorts_dict_by_count(self):
        assert list(ranked({"b": 1, "a": 5})) == ["a", "b"]

    def test_accepts_pairs_and_skips_junk(self):
        assert ranked([["x", "3"], ("y", 7), "bad", ("z", "n/a")]) == {"y": 7, "x": 3}


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------


class TestResearcher:
    def test_from_dict(self):
        r = Researcher.from_dict({"_unique_id": 7, "name": "Alice Martin", "category": "Professors"})
        assert r.id == "7"
        assert r.name == "Alice Martin"
        assert r.category == "Professors"

    def test_missing_category(self):
        assert Researcher.from_dict({"id": "r4", "name": "Dan"}).category is None

    def test_rejects_empty_record(self):
        with pytest.raises(ValueError):
            Researcher.from_dict({"category": "Professors"})


class TestProject:
    def test_french_columns(self):
        p = Project.from_dict({
            "_unique_id": "p1",
            "NOM": "ALPHA",
            "type": "ANR",
            "PARTENAIRES": "Lab A, Lab B",
            "FINANCEURS": "ANR",
            "MOTS CLÉS": "fusion",
            "PÉRIODE": "2020-2024",
        })
        assert p.name == "ALPHA"
        assert p.partners == ["Lab A", "Lab B"]
        assert p.funders == ["ANR"]
        assert p.keywords == "fusion"
        assert p.period == "2020-2024"

    def test_english_keys_and_id_fallback(self):
        p = Project.from_dict({"name": "BETA", "partners": "Lab C"})
        assert p.id == "BETA"
        assert p.partners == ["Lab C"]
        assert p.funders == []
        assert p.type is None

    def test_to_dict(self):
        d = Project(id="p1", name="ALPHA", partners=["Lab A"]).to_dict()
        assert d["partners"] == ["Lab A"]

    def test_rejects_non_object(self):
        with pytest.raises(ValueError):
            Project.from_dict(["ALPHA"])


class TestPublication:
    def test_hal_list_fields(self):
        pub = Publication.from_doc({
            "title_s": ["Paper one"],
            "producedDateY_i": "2024",
            "journalTitle_s": "J. Imaging",
            "keyword_s": ["fusion"],
            "authFullName_s": ["Jane Doe", "Marc Leroy"],
        })
        assert pub.title == "Paper one"
        assert pub.year == 2024
        assert pub.journal == "J. Imaging"
        assert pub.authors == ["Jane Doe", "Marc Leroy"]

    def test_missing_title(self):
        pub = Publication.from_doc({"year": "unknown"})
        assert pub.title == "Untitled Publication"
        assert pub.year is None
        assert pub.authors == []


# ---------------------------------------------------------------------------
# Details
# ---------------------------------------------------------------------------


class TestPersonDetail:
    def test_prefers_hal(self):
        detail = PersonDetail.from_stats({
            "stats": {
                "hal": {
                    "found": True,
                    "recent_publications": [{"title_s": "H"}],
                    "top_collaborators": {"Jane Doe": 2},
                },
                "dblp": {"recent_publications": [{"title": "D"}]},
            }
        })
        assert [p.title for p in detail.publications] == ["H"]
        assert detail.collaborators == {"Jane Doe": 2}
        assert detail.total_publications == 1

    def test_falls_back_to_dblp(self):
        detail = PersonDetail.from_stats({
            "stats": {
                "hal": {"found": False},
                "dblp": {
                    "total_publications": 12,
                    "recent_publications": [{"title": "D"}],
                    "top_collaborators": [["Marc Leroy", 4]],
                },
            }
        })
        assert [p.title for p in detail.publications] == ["D"]
        assert detail.collaborators == {"Marc Leroy": 4}
        assert detail.total_publications == 12

    def test_missing_stats_raises(self):
        with pytest.raises(ValueError):
            PersonDetail.from_stats({"profile": {}})

    def test_non_object_sections_raise(self):
        with pytest.raises(ValueError):
            PersonDetail.from_stats({"stats": {"hal": "down"}})
        with pytest.raises(ValueError):
            PersonDetail.from_stats({"stats": {"hal": {"found": True, "recent_publications": "none"}}})

    def test_empty_detail(self):
        detail = PersonDetail.from_stats({"stats": {}})
        assert detail.is_empty

    def test_derive_excludes_self_case_insensitively(self):
        pubs = [
            Publication(title="A", authors=["Jane Doe", "Marc Leroy"], keywords=["fusion"]),
            Publication(title="B", authors=["JANE DOE", "Marc Leroy", "Alice Martin"], keywords=["fusion", "radar"]),
            Publication(title="C", authors=[" jane doe "]),
        ]
        detail = PersonDetail.derive("Jane Doe", pubs, max_collaborators=10, max_publications=2)
        assert detail.collaborators == {"Marc Leroy": 2, "Alice Martin": 1}
        assert detail.keywords == {"fusion": 2, "radar": 1}
        assert [p.title for p in detail.publications] == ["A", "B"]
        assert detail.total_publications == 3

    def test_derive_caps_collaborators(self):
        pubs = [Publication(title="A", authors=[f"Author {i}" for i in range(20)])]
        detail = PersonDetail.derive("Someone Else", pubs, max_collaborators=5)
        assert len(detail.collaborators) == 5


class TestProjectDetail:
    def test_not_found_is_empty(self):
        detail = ProjectDetail.from_payload({"stats": {"hal": {"found": False}}})
        assert detail.publications == []
        assert detail.total_publications == 0

    def test_found(self):
        detail = ProjectDetail.from_payload({
            "stats": {"hal": {
                "found": True,
                "top_authors": {"Alice Martin": 3},
                "recent_publications": [{"title": "Alpha results", "authors": ["Alice Martin"]}],
            }}
        })
        assert detail.top_authors == {"Alice Martin": 3}
        assert detail.publications[0].authors == ["Alice Martin"]
        assert detail.total_publications == 1

    def test_string_stats_raise(self):
        with pytest.raises(ValueError):
            ProjectDetail.from_payload({"stats": "unavailable"})
