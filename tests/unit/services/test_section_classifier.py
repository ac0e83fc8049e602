import pytest

from profile_enrichment.models.profile import ProfileField, StructuredBuckets
from profile_enrichment.services.extraction.section_classifier import SectionClassifier, classify


@pytest.fixture
def classifier():
    return SectionClassifier()


class TestCourseDetection:

    def test_course_under_heading(self, classifier):
        text = "Skills\nJavaScript, React\nCourses\nFullStack AI Training - 2025\nEducation\nBachelor of Science"

        result = classifier.classify(text)

        assert "FullStack AI Training - 2025" in result.courses
        assert result.skills == ["JavaScript", "React"]
        assert result.education == ["Bachelor of Science"]

    def test_course_from_line_fallback(self, classifier):
        result = classifier.classify("FullStack AI Training - 2025\nJavaScript Developer")

        assert "FullStack AI Training - 2025" in result.courses

    def test_training_program_is_never_military(self, classifier):
        result = classifier.classify("Training program in software engineering\nJavaScript Developer")

        assert result.military == []
        assert result.courses == ["Training program in software engineering"]


class TestProjectDetection:

    def test_project_under_heading(self, classifier):
        text = "Projects\nDeveloping a Directory Microservice in the EduCore system\nSkills\nJavaScript, Node.js"

        result = classifier.classify(text)

        assert any("Directory Microservice" in project for project in result.projects)
        assert result.skills == ["JavaScript", "Node.js"]

    def test_project_from_line_fallback(self, classifier):
        result = classifier.classify(
            "Developing a Directory Microservice in the EduCore system\nJavaScript Developer"
        )

        assert any("Directory Microservice" in project for project in result.projects)


class TestMilitaryDetection:

    def test_idf_service_under_heading(self, classifier):
        text = "Military Service\nCompleted mandatory IDF combat service\nEducation\nBachelor of Science"

        result = classifier.classify(text)

        assert result.military == ["Completed mandatory IDF combat service"]

    def test_army_keyword(self, classifier):
        result = classifier.classify("Military Service\nServed in the army for 3 years")

        assert any("army" in entry.lower() for entry in result.military)

    def test_generic_service_word_is_not_military(self, classifier):
        result = classifier.classify("Customer service representative\nJavaScript Developer")

        assert result.military == []
        assert "Customer service representative" in result.work_experience


class TestHeadingSynonyms:

    @pytest.mark.parametrize("heading, content, bucket", [
        ("Abilities", "JavaScript, React, Node.js", ProfileField.SKILLS),
        ("Professional Experience", "Senior Software Engineer at Tech Company", ProfileField.WORK_EXPERIENCE),
        ("Training Programs", "FullStack AI Bootcamp", ProfileField.COURSES),
        ("Portfolio", "E-commerce platform built with React", ProfileField.PROJECTS),
    ])
    def test_synonym_routes_to_canonical_bucket(self, classifier, heading, content, bucket):
        result = classifier.classify(f"{heading}\n{content}\nEducation\nBachelor of Science")

        entries = getattr(result, bucket.value)
        assert entries
        if bucket == ProfileField.SKILLS:
            assert "JavaScript" in entries
        else:
            assert entries == [content]

    def test_inline_heading_content(self, classifier):
        result = classifier.classify("Skills: Python, Docker\nLanguages: English, Hebrew")

        assert result.skills == ["Python", "Docker"]
        assert result.languages == ["English", "Hebrew"]

    def test_stop_heading_closes_section(self, classifier):
        result = classifier.classify("Skills\nPython\nReferences\nAvailable upon request")

        assert result.skills == ["Python"]
        assert result.work_experience == []

    def test_unknown_heading_closes_section(self, classifier):
        result = classifier.classify("Skills\nPython\nPERSONAL STATEMENT\nI enjoy solving problems")

        assert result.skills == ["Python"]


class TestHeadingPrefixes:

    @pytest.mark.parametrize("line, bucket", [
        ("Education and Certifications", ProfileField.EDUCATION),
        ("Technical Skills & Tools", ProfileField.SKILLS),
        ("WORK EXPERIENCE (2015-2023)", ProfileField.WORK_EXPERIENCE),
        ("Languages Spoken", ProfileField.LANGUAGES),
        ("Projects / Open Source", ProfileField.PROJECTS),
    ])
    def test_keyword_prefix_matches(self, classifier, line, bucket):
        assert classifier.match_heading(line) == (bucket, "")

    @pytest.mark.parametrize("line", [
        "Experience with Go and gRPC services",
        "Toolsmith Guild",
        "Skills, tools and more",
        "Training program in software engineering",
    ])
    def test_content_lines_are_not_headings(self, classifier, line):
        assert classifier.match_heading(line) is None

    def test_longer_heading_starts_new_section(self, classifier):
        result = classifier.classify(
            "Skills\nPython, Go\nEducation and Certifications\n"
            "B.Sc Computer Science, Tel Aviv University\n"
        )

        assert result.skills == ["Python", "Go"]
        assert result.education == ["B.Sc Computer Science, Tel Aviv University"]

    def test_prefixed_heading_with_year_range(self, classifier):
        result = classifier.classify(
            "WORK EXPERIENCE (2015-2023)\nBackend Developer at Acme\nEducation\nBachelor of Science"
        )

        assert result.work_experience == ["Backend Developer at Acme"]
        assert result.education == ["Bachelor of Science"]

    def test_prefixed_heading_keeps_inline_content(self, classifier):
        result = classifier.classify("Languages Spoken: English, Hebrew")

        assert result.languages == ["English", "Hebrew"]

    def test_sentence_starting_with_keyword_stays_in_section(self, classifier):
        result = classifier.classify(
            "Experience\nBackend Developer at Acme\nExperience with Go and gRPC services"
        )

        assert result.work_experience == [
            "Backend Developer at Acme",
            "Experience with Go and gRPC services",
        ]


class TestPIIInBuckets:

    def test_contact_lines_never_reach_buckets(self, classifier):
        text = (
            "Contact\ndana@example.com\n+972 541234567\n"
            "Skills\nPython\ndana@example.com\n12/05/1990\n"
            "Experience\nBackend Developer at Acme\n+972 541234567"
        )

        result = classifier.classify(text)

        for entries in result.model_dump().values():
            if not isinstance(entries, list):
                continue
            for entry in entries:
                assert "dana@example.com" not in entry
                assert "541234567" not in entry
                assert "12/05/1990" not in entry
        assert result.skills == ["Python"]
        assert result.work_experience == ["Backend Developer at Acme"]

    def test_line_with_email_is_dropped(self, classifier):
        result = classifier.classify("Experience\nMaintained the mailer, reports to lead@acme.io weekly")

        assert result.work_experience == []

    def test_identifier_inside_kept_line_is_redacted(self, classifier):
        result = classifier.classify("Experience\nBackend Developer, badge ID 48213-77 at Acme")

        assert result.work_experience == ["Backend Developer, badge [ID_REMOVED] at Acme"]


class TestFallbackTiers:

    def test_document_wide_extraction_without_headings(self, classifier):
        text = (
            "Dana works with Python and Docker every day.\n"
            "Speaks English and French.\n"
            "B.Sc in Computer Science, Tel Aviv University\n"
            "Backend Developer at Acme 2019 - present"
        )

        result = classifier.classify(text)

        assert result.skills == ["Python", "Docker"]
        assert result.languages == ["English", "French"]
        assert result.education == ["B.Sc in Computer Science, Tel Aviv University"]
        assert result.work_experience == ["Backend Developer at Acme 2019 - present"]

    def test_last_resort_chunks(self, classifier):
        text = "Enjoys solving difficult puzzles with friends. Spends weekends hiking the northern trails."

        result = classifier.classify(text)

        assert result.work_experience == [
            "Enjoys solving difficult puzzles with friends.",
            "Spends weekends hiking the northern trails.",
        ]

    def test_last_resort_truncated_chunk(self, classifier):
        result = classifier.classify("Hi there")

        assert result.work_experience == ["Hi there"]


class TestOutput:

    def test_returns_every_bucket(self, classifier):
        result = classifier.classify("Skills\nJavaScript\nEducation\nBachelor of Science")

        assert isinstance(result, StructuredBuckets)
        for bucket in ProfileField:
            assert isinstance(getattr(result, bucket.value), list)

    def test_deduplicates_preserving_order(self, classifier):
        result = classifier.classify("Skills\nPython, Docker, Python\nDocker")

        assert result.skills == ["Python", "Docker"]

    def test_strips_bullets(self, classifier):
        result = classifier.classify("Experience\n• Backend Developer at Acme\n- Team Lead at Initech")

        assert result.work_experience == ["Backend Developer at Acme", "Team Lead at Initech"]

    @pytest.mark.parametrize("raw_text", ["", "   \n  ", None, 42, b"%PDF", ["Skills"]])
    def test_blank_or_invalid_input_yields_empty_buckets(self, raw_text):
        result = classify(raw_text)

        assert result.is_empty()
        assert result == StructuredBuckets()

    def test_deterministic(self, classifier):
        text = "Skills\nPython, Go\nExperience\nBackend Developer at Acme"

        assert classifier.classify(text) == classifier.classify(text)
