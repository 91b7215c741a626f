"""Keyword analysis page, driven headless through Streamlit's AppTest."""

from streamlit.testing.v1 import AppTest

PAGE = "../pages/keyword_analysis.py"


def _page(domain_keywords: dict) -> AppTest:
    at = AppTest.from_file(PAGE, default_timeout=30)
    at.session_state["dfs_login"] = "user@example.com"
    at.session_state["dfs_password"] = "secret"
    at.session_state["domain_keywords"] = domain_keywords
    at.run()
    at.radio[0].set_value("Domain").run()
    return at


def _captions(at: AppTest) -> list[str]:
    return [c.value for c in at.caption]


class TestDomainMode:
    def test_pulled_keywords_shown_for_same_domain(self):
        at = _page({"brandx.com": ["brandx shoes", "brandx outlet"]})

        at.text_input[0].input("https://www.brandx.com/").run()

        assert not at.exception
        assert any("2 ranked keywords: brandx shoes, brandx outlet" in c for c in _captions(at))

    def test_new_domain_does_not_reuse_previous_keywords(self):
        at = _page({"brandx.com": ["brandx shoes", "brandx outlet"]})

        at.text_input[0].input("othershop.it").run()

        assert not at.exception
        assert not any("ranked keywords" in c for c in _captions(at))
        assert at.session_state["domain_keywords"] == {"brandx.com": ["brandx shoes", "brandx outlet"]}
