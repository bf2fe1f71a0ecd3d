"""
Tests for the per-context cookie jar file.
"""

import gc
from http.cookiejar import Cookie

from reqrox.core.cookie_store import CookieStore


def _session_cookie(name: str, value: str) -> Cookie:
    return Cookie(
        version=0, name=name, value=value, port=None, port_specified=False,
        domain="example.com", domain_specified=False, domain_initial_dot=False,
        path="/", path_specified=True, secure=False, expires=None, discard=True,
        comment=None, comment_url=None, rest={},
    )


class TestCookieStore:
    """Lifecycle of the cookie file."""

    def test_created_in_directory(self, tmp_path):
        store = CookieStore(tmp_path)
        try:
            assert store.exists
            assert store.path.parent == tmp_path
            assert store.path.name.startswith("reqrox")
        finally:
            store.close()

    def test_unique_per_store(self, tmp_path):
        with CookieStore(tmp_path) as first, CookieStore(tmp_path) as second:
            assert first.path != second.path

    def test_new_jar_is_loadable_and_empty(self, tmp_path):
        with CookieStore(tmp_path) as store:
            assert len(store.load()) == 0

    def test_close_removes_file_once(self, tmp_path):
        store = CookieStore(tmp_path)
        path = store.path
        store.close()
        assert not path.exists()
        assert store.closed
        store.close()
        assert store.closed

    def test_context_manager_removes_file(self, tmp_path):
        with CookieStore(tmp_path) as store:
            path = store.path
        assert not path.exists()

    def test_removed_on_garbage_collection(self, tmp_path):
        store = CookieStore(tmp_path)
        path = store.path
        del store
        gc.collect()
        assert not path.exists()

    def test_removed_when_block_raises(self, tmp_path):
        path = None
        try:
            with CookieStore(tmp_path) as store:
                path = store.path
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert path is not None and not path.exists()

    def test_session_cookies_survive_reload(self, tmp_path):
        with CookieStore(tmp_path) as store:
            jar = store.load()
            jar.set_cookie(_session_cookie("session", "abc123"))
            jar.save(ignore_discard=True, ignore_expires=True)

            reloaded = {cookie.name: cookie.value for cookie in store.load()}
            assert reloaded == {"session": "abc123"}
