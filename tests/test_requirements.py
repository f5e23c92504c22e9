"""Tests for job requirements extraction."""

import json

from talent_sourcing.sourcing.requirements import (
    extract_job_requirements,
    parse_jd_digest,
    requirements_from_job_context,
)


class TestParseJdDigest:
    """Tests for digest parsing."""

    def test_json_digest(self):
        """A JSON digest with topSkills is used directly."""
        digest = json.dumps(
            {
                "topSkills": ["Python", "Django", None, " "],
                "seniorityLevel": "senior",
                "domain": "fintech",
                "roleFamily": "backend",
            }
        )
        parsed = parse_jd_digest(digest)
        assert parsed["topSkills"] == ["Python", "Django"]
        assert parsed["seniorityLevel"] == "senior"
        assert parsed["domain"] == "fintech"
        assert parsed["roleFamily"] == "backend"

    def test_delimited_digest(self):
        """Plain digests are split on semicolons and commas."""
        assert parse_jd_digest("Python; Django, PostgreSQL;;") == {
            "topSkills": ["Python", "Django", "PostgreSQL"]
        }

    def test_json_without_top_skills_is_text(self):
        """JSON without topSkills is treated as free text."""
        parsed = parse_jd_digest('{"foo": 1}')
        assert parsed["topSkills"] == ['{"foo": 1}']

    def test_empty_digest(self):
        """Empty and whitespace digests yield no skills."""
        assert parse_jd_digest("") == {"topSkills": []}
        assert parse_jd_digest(None) == {"topSkills": []}


class TestExtractJobRequirements:
    """Tests for the full extraction with structured fallbacks."""

    def test_falls_back_to_structured_skills(self):
        """An empty digest uses skills then good-to-have skills."""
        requirements = extract_job_requirements(
            "",
            skills=["Go", "Kubernetes"],
            good_to_have_skills=["go", "Terraform"],
            title="Senior Platform Engineer",
        )
        assert requirements.top_skills == ("Go", "Kubernetes", "Terraform")
        assert requirements.seniority_level == "senior"
        assert requirements.role_family == "devops"

    def test_digest_fields_win(self):
        """Digest seniority and role family take precedence over the title."""
        digest = json.dumps(
            {"topSkills": ["React"], "seniorityLevel": "staff", "roleFamily": "frontend"}
        )
        requirements = extract_job_requirements(digest, title="Junior Backend Engineer")
        assert requirements.seniority_level == "staff"
        assert requirements.role_family == "frontend"

    def test_role_family_from_skills(self):
        """Without title or digest family, skills are scanned."""
        requirements = extract_job_requirements("Android, Kotlin")
        assert requirements.role_family == "mobile"

    def test_never_raises_on_garbage(self):
        """Unusable values become None rather than errors."""
        requirements = extract_job_requirements(
            None, title="  ", location="", experience_years=-3, education=None
        )
        assert requirements.top_skills == ()
        assert requirements.seniority_level is None
        assert requirements.role_family is None
        assert requirements.location is None
        assert requirements.experience_years is None


class TestRequirementsFromJobContext:
    """Tests for reading a persisted camelCase job context."""

    def test_reads_camel_case_fields(self):
        """All camelCase keys are honored."""
        requirements = requirements_from_job_context(
            {
                "jdDigest": "Python, FastAPI",
                "title": "Backend Engineer",
                "location": "Berlin",
                "experienceYears": "5",
                "education": "BSc",
                "jobTrackHint": "tech",
            }
        )
        assert requirements.top_skills == ("Python", "FastAPI")
        assert requirements.role_family == "backend"
        assert requirements.location == "Berlin"
        assert requirements.experience_years == 5.0
        assert requirements.education == "BSc"

    def test_none_context(self):
        """A missing context yields empty requirements."""
        assert requirements_from_job_context(None).top_skills == ()
