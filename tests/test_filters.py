from bookscrapper.utils.filters import is_valid_link


def test_is_valid_link_accepts_internal_html_pages():
    url = "https://www.gildia.pl/literatura/123-diuna"
    assert is_valid_link("www.gildia.pl", url)


def test_is_valid_link_rejects_assets_and_external_domains():
    blocked_asset = "https://www.gildia.pl/okladki/diuna.jpg"
    ebook = "https://www.gildia.pl/pliki/diuna.epub?download=1"
    external = "https://external.com/page"
    subdomain = "https://sklep.gildia.pl/page"
    javascript = "javascript:alert('x')"

    assert not is_valid_link("www.gildia.pl", blocked_asset)
    assert not is_valid_link("www.gildia.pl", ebook)
    assert not is_valid_link("www.gildia.pl", external)
    assert not is_valid_link("www.gildia.pl", subdomain)
    assert not is_valid_link("www.gildia.pl", javascript)
