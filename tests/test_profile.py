"""
Tests for profile storage, FillData and the legacy resume path.
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from browser.profile import (
    FillData, Profile, ProfileManager, WorkExperience, profile_from_resume, split_location,
)


# ============ Profile Tests ============

class TestProfile:

    def test_from_dict_camel_case(self, ada_profile):
        profile = Profile.from_dict(ada_profile)

        assert profile.first_name == "Ada"
        assert profile.full_name == "Ada Lovelace"
        assert len(profile.work_experience) == 2
        assert profile.work_experience[1].start_date == "2018-03"
        assert profile.education[0].institution == "University of London"

    def test_unknown_keys_dropped(self):
        profile = Profile.from_dict({"firstName": "Ada", "favouriteColour": "green"})

        assert "favouriteColour" not in profile.to_dict()

    def test_to_dict_shape(self, ada_profile):
        data = Profile.from_dict(ada_profile).to_dict()

        assert data["workExperience"][0]["startDate"] == "01/2020"
        assert data["education"][0]["graduationDate"] == "2017"
        assert data["projects"] == []

    def test_work_experience_aliases(self):
        job = WorkExperience.from_dict({"company": "AE", "position": "Engineer", "start_date": "2020"})

        assert (job.title, job.start_date) == ("Engineer", "2020")

    def test_location(self):
        assert Profile(city="Austin", state="TX").location == "Austin, TX"
        assert Profile(city="London").location == "London"


class TestFillData:

    def test_from_profile(self, ada_profile):
        data = FillData.from_profile(Profile.from_dict(ada_profile), cover_letter="Dear team")

        assert data.full_name == "Ada Lovelace"
        assert data.current_company == "Analytical Engines"
        assert data.years_of_experience == "2"
        assert data.degree == "Bachelor's Degree"
        assert data.cover_letter == "Dear team"
        assert "Name: Ada Lovelace" in data.context_text

    def test_defaults_for_compliance(self):
        data = FillData.from_profile(Profile())

        assert data.work_authorization == "yes"
        assert data.sponsorship_required == "no"


class TestLegacyResume:

    def test_profile_from_resume(self):
        text = "Ada Lovelace\nB.S. in Mathematics, University of London, Graduated 2017\n5 years of experience"
        data = profile_from_resume({"name": "Ada Lovelace", "email": "ada@x.com", "location": "Austin, TX"}, text)

        assert (data.first_name, data.last_name) == ("Ada", "Lovelace")
        assert (data.city, data.state) == ("Austin", "TX")
        assert data.degree == "Bachelor's Degree"
        assert data.university == "University of London"
        assert data.graduation_year == "2017"
        assert data.years_of_experience == "5"

    def test_empty(self):
        data = profile_from_resume(None)

        assert data.first_name == ""
        assert data.full_name == ""

    @pytest.mark.parametrize("location,expected", [
        ("Austin, TX", {"city": "Austin", "state": "TX", "country": "United States", "postal_code": ""}),
        ("Berlin, Germany", {"city": "Berlin", "state": "", "country": "Germany", "postal_code": ""}),
        ("Austin, TX, USA", {"city": "Austin", "state": "TX", "country": "USA", "postal_code": ""}),
        ("Austin, Texas, USA 78701", {"city": "Austin", "state": "Texas", "country": "USA 78701",
                                      "postal_code": "78701"}),
        ("", {"city": "", "state": "", "country": "", "postal_code": ""}),
    ])
    def test_split_location(self, location, expected):
        assert split_location(location) == expected


# ============ Profile Manager Tests ============

class TestProfileManager:

    def test_missing_file(self, tmp_path):
        manager = ProfileManager(tmp_path / "profile.json")

        assert manager.data == {}
        assert manager.profile.first_name == ""

    def test_save_and_reload(self, tmp_path, ada_profile):
        path = tmp_path / "nested" / "profile.json"
        ProfileManager(path).save_profile(Profile.from_dict(ada_profile))

        reloaded = ProfileManager(path)

        assert reloaded.profile.full_name == "Ada Lovelace"
        assert json.loads(path.read_text(encoding="utf-8"))["firstName"] == "Ada"
