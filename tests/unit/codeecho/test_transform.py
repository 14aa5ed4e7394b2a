import pytest

from codeecho.settings import OutputOptions
from codeecho.transform import compress_whitespace, remove_empty_lines, strip_comments, transform_content

GO_SOURCE = """package main

// Greet says hello.
func Greet() string {
\t/* block
\t   comment */
\treturn "http://example.com" // trailing
}
"""


@pytest.mark.unit
def test_strip_comments_handles_line_block_and_trailing_comments() -> None:
    out = strip_comments(GO_SOURCE, "Go")

    assert out == 'package main\n\nfunc Greet() string {\n\treturn "http://example.com"\n}\n'


@pytest.mark.unit
def test_strip_comments_keeps_markers_inside_strings() -> None:
    source = "x = '# not a comment'  # real\ny = \"a\\\"#b\"\n"

    assert strip_comments(source, "Python") == "x = '# not a comment'\ny = \"a\\\"#b\"\n"


@pytest.mark.unit
def test_strip_comments_preserves_shebang() -> None:
    source = "#!/bin/sh\n# setup\necho $# args\n"

    assert strip_comments(source, "Shell") == "#!/bin/sh\necho $# args\n"


@pytest.mark.unit
def test_strip_comments_inline_block_comment_leaves_code_joined() -> None:
    assert strip_comments("a = 1;/* x */b = 2;\n", "C") == "a = 1; b = 2;\n"


@pytest.mark.unit
def test_strip_comments_unknown_language_is_unchanged() -> None:
    text = "# heading\n// nothing to do\n"

    assert strip_comments(text, "") == text
    assert strip_comments(text, "Text") == text


@pytest.mark.unit
def test_strip_comments_markup() -> None:
    source = "<p>hi</p>\n<!--\nhidden\n-->\n<p>bye</p>\n"

    assert strip_comments(source, "HTML") == "<p>hi</p>\n<p>bye</p>\n"


@pytest.mark.unit
def test_remove_empty_lines_drops_whitespace_only_lines() -> None:
    assert remove_empty_lines("a\n\n  \n\tb\n\n") == "a\n\tb\n"


@pytest.mark.unit
def test_compress_whitespace_keeps_indentation() -> None:
    source = "def f():\n    x  =\t1   \n"

    assert compress_whitespace(source) == "def f():\n    x = 1\n"


@pytest.mark.unit
def test_transform_content_applies_enabled_steps_only() -> None:
    options = OutputOptions(remove_comments=True)

    assert transform_content("a = 1  # c\n\nb  =  2\n", "Python", options) == "a = 1\n\nb  =  2\n"
    assert transform_content("a  b\n", "Python", OutputOptions()) == "a  b\n"


@pytest.mark.unit
@pytest.mark.parametrize("language", ["Go", "Python", "C", "Shell", "PowerShell"])
def test_transformations_are_idempotent(language: str) -> None:
    options = OutputOptions(remove_comments=True, remove_empty_lines=True, compress_code=True)
    source = GO_SOURCE + "\n\n#!/not/first\nx  =  1   # note\n/* tail */\n"

    once = transform_content(source, language, options)

    assert transform_content(once, language, options) == once


@pytest.mark.unit
@pytest.mark.parametrize(
    "source",
    ["$a = 1 <# note #># trailing\n", "$a = 1<# note #># trailing\n", "<# head #># rest\n$b = 2\n"],
)
def test_line_comment_right_after_a_block_comment_is_removed(source: str) -> None:
    options = OutputOptions(remove_comments=True)

    once = transform_content(source, "PowerShell", options)

    assert "#" not in once
    assert transform_content(once, "PowerShell", options) == once
