from edgecache import DEFAULT_BYPASS_COOKIES, should_bypass


def test_wordpress_cookie_bypasses():
    assert should_bypass("wp-settings-1=abc; session=xyz", DEFAULT_BYPASS_COOKIES) is True


def test_unrelated_cookie_does_not_bypass():
    assert should_bypass("session=xyz", DEFAULT_BYPASS_COOKIES) is False


def test_empty_or_missing_cookie_header():
    assert should_bypass("", DEFAULT_BYPASS_COOKIES) is False
    assert should_bypass(None, DEFAULT_BYPASS_COOKIES) is False


def test_empty_prefix_list_disables_bypass():
    assert should_bypass("wp-settings-1=abc", []) is False


def test_cookies_are_trimmed():
    assert should_bypass("session=xyz;    comment_author=me", DEFAULT_BYPASS_COOKIES) is True


def test_prefix_match_is_case_sensitive():
    assert should_bypass("WP-settings=1", DEFAULT_BYPASS_COOKIES) is False


def test_prefix_must_start_the_cookie():
    assert should_bypass("my_wordpress=1", DEFAULT_BYPASS_COOKIES) is False


def test_custom_prefixes():
    assert should_bypass("a=1; cart_id=5", ["cart_"]) is True
    assert should_bypass("a=1; wp-settings=5", ["cart_"]) is False
