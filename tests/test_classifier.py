import re

from wpdetect.classifier import VersionRule, classify, extract_version, find_markers, is_valid_version


def page(*parts: str) -> str:
    return "<html><head>" + "\n".join(parts) + "</head><body>hi</body></html>"


def test_no_markers_is_not_wordpress():
    ev = classify(page('<link rel="stylesheet" href="/static/site.css?ver=6.1">'))
    assert not ev.is_wordpress
    assert ev.version is None
    assert ev.theme is None
    assert ev.plugins == []
    assert ev.provenance == ""


def test_markers_are_case_insensitive():
    assert find_markers('<script src="/WP-INCLUDES/js/x.js"></script>') == ["wp-includes"]


def test_markers_reported_in_fixed_order():
    body = page(
        '<link rel="https://api.w.org/" href="https://example.com/wp-json/">',
        '<script src="/wp-content/themes/astra/app.js"></script>',
    )
    assert find_markers(body) == ["wp-content", "wp-json"]


def test_meta_generator_beats_asset_versions():
    body = page(
        '<script src="/wp-includes/js/wp-embed.min.js?ver=5.9.3"></script>',
        '<meta name="generator" content="WordPress 6.4.2" />',
    )
    ev = classify(body)
    assert ev.is_wordpress
    assert ev.version == "6.4.2"
    assert ev.provenance == "meta generator: wp-includes"


def test_embed_script_before_emoji_and_generic_ver():
    body = page(
        '<script src="/wp-content/plugins/x/a.js?ver=4.1"></script>',
        '<script src="/wp-includes/js/wp-emoji-release.min.js?ver=5.8"></script>',
        '<script src="/wp-includes/js/wp-embed.min.js?ver=5.9.3"></script>',
    )
    ev = classify(body)
    assert ev.version == "5.9.3"
    assert ev.version_source == "wp-embed.min.js"


def test_emoji_release_script_version():
    body = page('<script src="https://example.com/wp-includes/js/wp-emoji-release.min.js?ver=6.2.1"></script>')
    ev = classify(body)
    assert ev.version == "6.2.1"
    assert ev.provenance == "wp-emoji-release.min.js: wp-includes, wp-emoji"


def test_generic_asset_version_fallback():
    ev = classify(page('<link href="/wp-content/themes/kadence/style.css?ver=6.0"/>'))
    assert ev.version == "6.0"
    assert ev.version_source == "asset version"


def test_elementor_generator_is_last_resort():
    body = page('<meta name="generator" content="Elementor 5.12.1; features: e_dom_optimization">')
    ev = classify(page('<meta name="generator" content="Elementor 5.12">'))
    assert ev.version == "5.12"
    assert ev.provenance == "elementor meta generator: elementor"
    # trailing text after the number breaks the quoted-content pattern
    assert classify(body).version == "Unknown"


def test_version_out_of_band_is_unknown():
    body = page(
        '<meta name="generator" content="WordPress 10.1" />',
        '<script src="/wp-content/plugins/foo/a.js?ver=3.2.1"></script>',
    )
    ev = classify(body)
    assert ev.is_wordpress
    assert ev.version == "Unknown"
    assert ev.version_source is None
    assert ev.provenance == "wp-content"


def test_invalid_candidate_falls_through_to_next_rule():
    body = page(
        '<meta name="generator" content="WordPress 3.9" />',
        '<script src="/wp-includes/js/wp-emoji-release.min.js?ver=6.3"></script>',
    )
    assert classify(body).version == "6.3"


def test_generator_pattern_is_case_sensitive():
    body = page('<META NAME="GENERATOR" CONTENT="WORDPRESS 6.4">', '<a href="/wp-admin/">admin</a>')
    ev = classify(body)
    assert ev.is_wordpress
    assert ev.version == "Unknown"


def test_unknown_sentinel_is_configurable():
    assert classify(page("/wp-login.php"), unknown_version="n/a").version == "n/a"


def test_plugins_deduplicated_in_first_seen_order():
    body = page(
        '<script src="/wp-content/plugins/foo/a.js"></script>',
        '<script src="/wp-content/plugins/bar/b.js"></script>',
        '<script src="/wp-content/plugins/foo/c.js"></script>',
        '<script src="/wp-content/plugins/bar/d.js"></script>',
    )
    assert classify(body).plugins == ["foo", "bar"]


def test_first_theme_wins():
    body = page(
        '<link href="/wp-content/themes/child-theme/style.css">',
        '<link href="/wp-content/themes/parent-theme/style.css">',
    )
    assert classify(body).theme == "child-theme"


def test_is_valid_version():
    assert is_valid_version("4.0")
    assert is_valid_version("6.4.2")
    assert is_valid_version("9.99.99")
    assert not is_valid_version("3.9")
    assert not is_valid_version("10.1")
    assert not is_valid_version("6")
    assert not is_valid_version("6.100")
    assert not is_valid_version("6.4.2.1")


def test_custom_rule_order():
    rules = [
        VersionRule("asset version", re.compile(r"\?ver=([0-9.]+)")),
        VersionRule("meta generator", re.compile(r'content="WordPress ([0-9.]+)"')),
    ]
    body = '<meta name="generator" content="WordPress 6.4"><script src="a.js?ver=5.5"></script>'
    assert extract_version(body, rules) == ("5.5", "asset version")
    assert extract_version(body) == ("6.4", "meta generator")
