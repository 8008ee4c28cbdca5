import pytest

from mirror_edge.edge.substitution import GLOBAL, MAIN_DOMAIN, RewriteContext


@pytest.fixture
def context():
    def _create(mode=GLOBAL, proxy_host="target.example.b.com"):
        return RewriteContext(
            target_domain="target.example",
            proxy_host=proxy_host,
            own_domain="b.com",
            mode=mode,
        )

    return _create


class TestGlobalMode:
    def test_every_occurrence_is_replaced(self, context):
        text = "target.example https://target.example/a //cdn.target.example/x.js"
        result = context().substitute(text)

        assert result == (
            "target.example.b.com https://target.example.b.com/a "
            "//cdn.target.example.b.com/x.js"
        )
        assert "target.example" not in result.replace("target.example.b.com", "")

    def test_already_proxied_host_is_left_alone(self, context):
        text = "https://target.example.b.com/x"
        assert context().substitute(text) == text

    def test_dots_are_literal(self, context):
        assert context().substitute("targetXexample") == "targetXexample"

    def test_case_insensitive(self, context):
        assert context().substitute("TARGET.EXAMPLE") == "target.example.b.com"


class TestMainDomainMode:
    def test_bare_hostname_is_replaced(self, context):
        ctx = context(MAIN_DOMAIN)
        assert ctx.substitute("https://target.example/foo") == "https://target.example.b.com/foo"
        assert ctx.substitute("target.example") == "target.example.b.com"
        assert ctx.substitute('"//target.example"') == '"//target.example.b.com"'

    def test_subdomain_is_not_replaced(self, context):
        ctx = context(MAIN_DOMAIN)
        text = "https://dl.target.example/file.torrent"
        assert ctx.substitute(text) == text

    def test_longer_domain_is_not_replaced(self, context):
        ctx = context(MAIN_DOMAIN)
        for text in ("target.example.cn", "mytarget.example", "target.example-cdn.net"):
            assert ctx.substitute(text) == text

    def test_sentence_punctuation(self, context):
        ctx = context(MAIN_DOMAIN)
        assert ctx.substitute("Visit target.example.") == "Visit target.example.b.com."


class TestHostnameMapping:
    def test_owns_exact_target(self, context):
        assert context().owns_hostname("target.example")
        assert context(MAIN_DOMAIN).owns_hostname("Target.Example")

    def test_subdomains_depend_on_mode(self, context):
        assert context().owns_hostname("www.target.example")
        assert not context(MAIN_DOMAIN).owns_hostname("www.target.example")

    def test_unrelated_hosts_are_not_owned(self, context):
        assert not context().owns_hostname("other.org")
        assert not context().owns_hostname("eviltarget.example")

    def test_proxy_hostname_for_subdomain(self, context):
        assert context().proxy_hostname_for("www.target.example") == "www.target.example.b.com"
        assert context().proxy_hostname_for("target.example") == "target.example.b.com"

    def test_proxy_hostname_drops_port(self, context):
        ctx = context(proxy_host="target.example.b.com:8443")
        assert ctx.proxy_hostname == "target.example.b.com"
