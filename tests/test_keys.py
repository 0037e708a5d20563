import pytest

from imagefeed_api.cache.keys import RequestKey, normalize, is_fetchable_url


class TestNormalize:
    @pytest.mark.parametrize(
        "a, b",
        [
            ("https://CDN.Pixabay.com/photo/1.jpg", "https://cdn.pixabay.com/photo/1.jpg"),
            ("HTTPS://cdn.pixabay.com/photo/1.jpg", "https://cdn.pixabay.com/photo/1.jpg"),
            ("https://cdn.pixabay.com:443/photo/1.jpg", "https://cdn.pixabay.com/photo/1.jpg"),
            ("http://cdn.pixabay.com:80/photo/1.jpg", "http://cdn.pixabay.com/photo/1.jpg"),
            ("https://cdn.pixabay.com/photo/1.jpg#large", "https://cdn.pixabay.com/photo/1.jpg"),
            ("  https://cdn.pixabay.com/photo/1.jpg\n", "https://cdn.pixabay.com/photo/1.jpg"),
            ("https://cdn.pixabay.com", "https://cdn.pixabay.com/"),
        ],
    )
    def test_equivalent_urls_produce_equal_keys(self, a, b):
        assert normalize(a) == normalize(b)
        assert hash(normalize(a)) == hash(normalize(b))

    def test_distinct_resources_produce_distinct_keys(self):
        assert normalize("https://cdn.pixabay.com/a.jpg") != normalize("https://cdn.pixabay.com/b.jpg")
        assert normalize("https://cdn.pixabay.com/a.jpg") != normalize("http://cdn.pixabay.com/a.jpg")
        assert normalize("https://cdn.pixabay.com:8443/a.jpg") != normalize("https://cdn.pixabay.com/a.jpg")

    def test_query_is_kept_verbatim(self):
        key = normalize("https://pixabay.com/api/?page=2&key=k")
        assert key.url == "https://pixabay.com/api/?page=2&key=k"
        assert key != normalize("https://pixabay.com/api/?key=k&page=2")

    def test_path_case_is_preserved(self):
        assert normalize("https://cdn.pixabay.com/Photo/A.JPG").url == "https://cdn.pixabay.com/Photo/A.JPG"

    def test_userinfo_and_ipv6_host(self):
        assert normalize("http://user:pw@Example.com/x").url == "http://user:pw@example.com/x"
        assert normalize("http://[::1]:8080/x").url == "http://[::1]:8080/x"

    def test_never_raises(self):
        assert isinstance(normalize("http://[broken/x"), RequestKey)
        assert isinstance(normalize("http://host:notaport/x"), RequestKey)
        assert normalize("not a url").url == "not a url"

    def test_key_str(self):
        assert str(normalize("https://cdn.pixabay.com/a.jpg")) == "https://cdn.pixabay.com/a.jpg"


class TestIsFetchableUrl:
    @pytest.mark.parametrize(
        "url",
        ["https://cdn.pixabay.com/a.jpg", "http://localhost:8000/x.png", "HTTPS://Example.com"],
    )
    def test_accepts_http_urls(self, url):
        assert is_fetchable_url(url)

    @pytest.mark.parametrize(
        "url",
        ["ftp://example.com/a.jpg", "/relative/a.jpg", "https://", "http://[broken/x", "file:///etc/passwd", ""],
    )
    def test_rejects_everything_else(self, url):
        assert not is_fetchable_url(url)
