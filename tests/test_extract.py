"""Tests for lexical parameter extraction."""

from aios.intent.extract import coverage, extract_parameters, find_phrase, overlaps, tokens
from aios.tools.builtin.oracle import INSTALL_ORACLE
from aios.tools.builtin.packages import INSTALL_PACKAGE
from aios.tools.builtin.requirements import CHECK_REQUIREMENTS
from aios.tools.builtin.web_server import SETUP_WEB_SERVER


def _extract(text, descriptor, keyword):
    match = find_phrase(text, keyword)
    return extract_parameters(text, descriptor, taken=[match.span()])


class TestHelpers:
    def test_tokens_strip_punctuation(self):
        assert [w for _, _, w in tokens("Install nginx, please!")] == ["install", "nginx", "please"]

    def test_find_phrase_is_whole_word_and_case_insensitive(self):
        assert find_phrase("Check  System Requirements", "check system requirements") is not None
        assert find_phrase("reinstall nginx", "install") is None
        assert find_phrase("apt --no-install-recommends", "install") is None

    def test_find_phrase_skips_taken(self):
        match = find_phrase("install foo and install bar", "install", taken=[(0, 7)])
        assert match.start() == 16

    def test_overlaps(self):
        assert overlaps((2, 5), [(4, 8)])
        assert not overlaps((2, 4), [(4, 8)])

    def test_coverage_ignores_stopwords(self):
        assert coverage("install nginx please", [(0, 7)]) == 0.5
        assert coverage("please", [(0, 6)]) == 0.0


class TestStrings:
    def test_word_after_hint(self):
        result = _extract("install nginx", INSTALL_PACKAGE, "install")
        assert result.params == {"package": "nginx"}
        assert coverage("install nginx", [(0, 7), *result.spans]) == 1.0

    def test_stopwords_skipped(self):
        assert _extract("install the htop package", INSTALL_PACKAGE, "install").params["package"] == "htop"

    def test_requirements_subject(self):
        result = _extract("check requirements for docker", CHECK_REQUIREMENTS, "check requirements")
        assert result.params == {"software": "docker"}


class TestEnums:
    def test_enum_word(self):
        assert _extract("install nginx with apt", INSTALL_PACKAGE, "install").params == {
            "package": "nginx",
            "manager": "apt",
        }

    def test_enum_inside_keyword(self):
        result = _extract("setup nginx", SETUP_WEB_SERVER, "setup nginx")
        assert result.params["server_type"] == "nginx"

    def test_earliest_enum_wins(self):
        result = _extract("web server apache then nginx", SETUP_WEB_SERVER, "web server")
        assert result.params["server_type"] == "apache"


class TestNumbers:
    def test_number_before_hint(self):
        result = _extract("install oracle with 8GB memory and 100GB storage", INSTALL_ORACLE, "install oracle")
        assert result.params == {"memory_gb": 8, "storage_gb": 100}

    def test_number_after_hint(self):
        result = _extract("install oracle with memory of 16 GB", INSTALL_ORACLE, "install oracle")
        assert result.params["memory_gb"] == 16

    def test_megabytes_scaled_to_gigabytes(self):
        result = _extract("install oracle with 2048MB ram", INSTALL_ORACLE, "install oracle")
        assert result.params["memory_gb"] == 2

    def test_fractional_value_kept(self):
        result = _extract("install oracle with 1.5GB memory", INSTALL_ORACLE, "install oracle")
        assert result.params["memory_gb"] == 1.5


class TestBooleans:
    def test_hint_present(self):
        result = _extract("setup nginx with ssl", SETUP_WEB_SERVER, "setup nginx")
        assert result.params["ssl_enabled"] is True

    def test_negated_hint(self):
        result = _extract("setup nginx without ssl", SETUP_WEB_SERVER, "setup nginx")
        assert result.params["ssl_enabled"] is False

    def test_negation_does_not_cross_conjunction(self):
        result = _extract("setup nginx without ssl but auto start", SETUP_WEB_SERVER, "setup nginx")
        assert result.params["ssl_enabled"] is False
        assert result.params["auto_start"] is True


class TestShapes:
    def test_hostname(self):
        result = _extract("setup apache with https for Example.COM", SETUP_WEB_SERVER, "setup apache")
        assert result.params["domain"] == "example.com"
        assert result.params["ssl_enabled"] is True

    def test_path_keeps_case(self):
        result = _extract("install oracle into /U01/App/Oracle/", INSTALL_ORACLE, "install oracle")
        assert result.params["install_path"] == "/U01/App/Oracle"

    def test_options(self):
        result = _extract("install git --no-install-recommends", INSTALL_PACKAGE, "install")
        assert result.params == {"package": "git", "options": ["--no-install-recommends"]}

    def test_nothing_found(self):
        assert _extract("install oracle", INSTALL_ORACLE, "install oracle").params == {}
