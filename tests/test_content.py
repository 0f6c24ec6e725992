import pytest
from bs4 import BeautifulSoup

from livepreview.content import ContentLoader, HTMLInjector


def body_of(content):
    return b"".join(content)


def test_injects_after_head():
    html = HTMLInjector(3456).inject("<html><head><title>t</title></head><body></body></html>")
    assert html.startswith("<html><head><script")
    assert "ws://127.0.0.1:3456" in html
    assert html.index("<script") < html.index("<title>")


def test_injects_after_head_with_attributes_and_case():
    html = HTMLInjector(1).inject('<HTML><HEAD lang="en"><TITLE>t</TITLE></HEAD></HTML>')
    assert html.startswith('<HTML><HEAD lang="en"><script')


def test_header_tag_is_not_mistaken_for_head():
    html = HTMLInjector(1).inject("<html><body><header>x</header></body></html>")
    assert html.startswith("<html><script")


def test_injects_before_document_without_head_or_html():
    html = HTMLInjector(1).inject("<p>bare</p>")
    assert html.startswith("<script")
    assert html.endswith("<p>bare</p>")


def test_ws_port_can_change():
    injector = HTMLInjector(1000)
    injector.ws_port = 2000
    assert "ws://127.0.0.1:2000" in injector.script
    assert "1000" not in injector.script


def test_file_stream_without_injector_is_raw(workspace):
    content = ContentLoader().file_stream(str(workspace / "index.html"))
    assert body_of(content) == (workspace / "index.html").read_bytes()
    assert content.content_type == "text/html"


def test_file_stream_injects_html(workspace):
    loader = ContentLoader(HTMLInjector(4321))
    body = body_of(loader.file_stream(str(workspace / "index.html"))).decode("utf-8")
    assert "ws://127.0.0.1:4321" in body
    assert "<title>Home</title>" in body


def test_file_stream_leaves_other_types_alone(workspace):
    loader = ContentLoader(HTMLInjector(4321))
    assert body_of(loader.file_stream(str(workspace / "assets" / "blob.bin"))) == (workspace / "assets" / "blob.bin").read_bytes()


def test_file_stream_fails_lazily(workspace):
    content = ContentLoader().file_stream(str(workspace / "nope.txt"))
    with pytest.raises(OSError):
        next(content.chunks)


def test_directory_index_lists_dirs_then_files(workspace):
    content = ContentLoader().directory_index(str(workspace / "assets"), "/assets/")
    soup = BeautifulSoup(body_of(content), "html.parser")

    assert soup.title.string == "Index of /assets/"
    links = [(a.get_text(), a["href"]) for a in soup.select("li a")]
    assert links == [
        ("..", "../"),
        ("sub/", "sub/"),
        ("blob.bin", "blob.bin"),
        ("Data.json", "Data.json"),
        ("logo.svg", "logo.svg"),
        ("style.css", "style.css"),
    ]
    assert content.length == len(body_of(ContentLoader().directory_index(str(workspace / "assets"), "/assets/")))


def test_directory_index_quotes_hrefs(workspace):
    soup = BeautifulSoup(body_of(ContentLoader().directory_index(str(workspace), "/")), "html.parser")
    hrefs = {a.get_text(): a["href"] for a in soup.select("li a")}
    assert hrefs["my page.html"] == "my%20page.html"
    assert ".." not in hrefs


def test_directory_index_titles_loose_root(outside):
    pics = str(outside / "pics")
    soup = BeautifulSoup(body_of(ContentLoader().directory_index(pics, "//x/pics/", pics)), "html.parser")
    assert soup.title.string == f"Index of {pics}"


def test_not_found_page_names_path_escaped():
    content = ContentLoader().not_found_page("/srv/site/a b/<x>.html")
    soup = BeautifulSoup(body_of(content), "html.parser")
    assert soup.select_one(".missing-path").get_text() == "/srv/site/a b/<x>.html"
    assert b"<x>" not in body_of(ContentLoader().not_found_page("/<x>"))


def test_generated_pages_get_injected():
    loader = ContentLoader(HTMLInjector(777))
    assert b"ws://127.0.0.1:777" in body_of(loader.not_found_page("/x"))
