from newsdesk.utils.validators import (
    limit_text,
    make_excerpt,
    slugify,
    split_keywords,
    strip_tags,
    validate_email,
    validate_url,
)


def test_validate_email_and_url() -> None:
    assert validate_email("reader@example.com") is True
    assert validate_email("reader@example") is False
    assert validate_url("https://example.com/a?b=c") is True
    assert validate_url("ftp://example.com") is False
    assert validate_url("https://exa mple.com") is False


def test_slugify() -> None:
    assert slugify("Hello World") == "hello-world"
    assert slugify("  Économie   Globale  ") == "economie-globale"
    assert slugify("Rock & Roll @ Home") == "rock-and-roll-at-home"
    assert slugify("---") == ""
    assert slugify("") == ""
    assert slugify("أخبار اليوم") == "أخبار-اليوم"
    assert len(slugify("a" * 300)) == 180


def test_strip_tags_and_excerpt() -> None:
    html = "<p>Hello <b>there</b></p><script>alert(1)</script>&amp; more"
    assert strip_tags(html) == "Hello there & more"
    assert strip_tags(None) == ""

    assert limit_text("short", 10) == "short"
    assert limit_text("abcdefghij", 5) == "abcde..."
    long_body = "<p>" + "word " * 100 + "</p>"
    excerpt = make_excerpt(long_body)
    assert excerpt.endswith("...")
    assert len(excerpt) <= 203


def test_split_keywords() -> None:
    assert split_keywords("a， b,a, ,c") == ["a", "b", "c"]
    assert split_keywords(["x", " y ", "x"]) == ["x", "y"]
    assert split_keywords(None) == []
    assert split_keywords(5) == ["5"]
