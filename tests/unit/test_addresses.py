"""
Unit tests for binding addresses and the address registry.
"""

import pytest

from simplewebserver.core.addresses import AddressRegistry, BindingAddress
from simplewebserver.core.listener import group_endpoints


class TestBindingAddress:
    """Tests for BindingAddress.parse()."""

    def test_parse_full(self):
        address = BindingAddress.parse("http://localhost:9999/app/")

        assert address.scheme == "http"
        assert address.host == "localhost"
        assert address.port == 9999
        assert address.path == "/app/"

    def test_default_port_and_path(self):
        address = BindingAddress.parse("http://example.com")

        assert address.port == 80
        assert address.path == "/"

    def test_path_gets_trailing_slash(self):
        assert BindingAddress.parse("http://localhost:8080/app").path == "/app/"

    @pytest.mark.parametrize("host", ["+", "*"])
    def test_wildcard_hosts_bind_everywhere(self, host):
        address = BindingAddress.parse(f"http://{host}:8080/")

        assert address.host == host
        assert address.bind_host == "0.0.0.0"

    def test_ipv6_host(self):
        address = BindingAddress.parse("http://[::1]:8080/")

        assert address.host == "::1"
        assert address.port == 8080

    @pytest.mark.parametrize("text", [
        "https://localhost:443/",
        "ftp://localhost/",
        "localhost:9999",
        "http://:9999/",
        "http://localhost:abc/",
        "http://localhost:70000/",
    ])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            BindingAddress.parse(text)

    def test_matches_prefix(self):
        address = BindingAddress.parse("http://localhost:9999/app/")

        assert address.matches("/app/index.html")
        assert address.matches("/app/")
        assert address.matches("/app")
        assert not address.matches("/other/index.html")
        assert not address.matches("/")

    def test_root_prefix_matches_everything(self):
        address = BindingAddress.parse("http://localhost:9999/")

        assert address.matches("/")
        assert address.matches("/deep/path/file.css")


class TestAddressRegistry:
    """Tests for AddressRegistry."""

    def test_add_and_contains(self):
        registry = AddressRegistry()
        registry.add("http://localhost:9999/")

        assert registry.contains("http://localhost:9999/")
        assert "http://localhost:9999/" in registry
        assert len(registry) == 1

    def test_add_is_idempotent(self):
        registry = AddressRegistry()
        registry.add("http://localhost:9999/")
        registry.add("http://localhost:9999/")

        assert registry.addresses == ("http://localhost:9999/",)

    def test_keeps_insertion_order(self):
        registry = AddressRegistry()
        for address in ["http://b:1/", "http://a:2/", "http://c:3/"]:
            registry.add(address)

        assert list(registry) == ["http://b:1/", "http://a:2/", "http://c:3/"]

    def test_remove_missing_is_noop(self):
        registry = AddressRegistry()
        registry.remove("http://localhost:9999/")

        assert len(registry) == 0

    def test_add_does_not_validate(self):
        """Malformed addresses are accepted and only fail when parsed."""
        registry = AddressRegistry()
        registry.add("not a url")

        assert "not a url" in registry
        with pytest.raises(ValueError):
            registry.parse_all()

    def test_mutations_ignored_while_locked(self):
        """Test that add/remove/clear are silent no-ops when locked."""
        registry = AddressRegistry()
        registry.add("http://localhost:9999/")
        registry.lock()

        registry.add("http://localhost:8080/")
        registry.remove("http://localhost:9999/")
        registry.clear()

        assert registry.addresses == ("http://localhost:9999/",)

        registry.unlock()
        registry.clear()
        assert len(registry) == 0

    def test_locked_mutation_logs_warning(self, caplog):
        registry = AddressRegistry()
        registry.lock()

        with caplog.at_level("WARNING", logger="simplewebserver.core.addresses"):
            registry.add("http://localhost:8080/")

        assert "Ignoring add" in caplog.text


class TestGroupEndpoints:
    """Tests for grouping binding addresses into listening sockets."""

    def test_shared_host_port(self):
        addresses = [
            BindingAddress.parse("http://localhost:9999/app/"),
            BindingAddress.parse("http://localhost:9999/api/"),
            BindingAddress.parse("http://localhost:8080/"),
        ]

        endpoints = group_endpoints(addresses)

        assert [(e.host, e.port) for e in endpoints] == [("localhost", 9999), ("localhost", 8080)]
        assert [a.path for a in endpoints[0].addresses] == ["/app/", "/api/"]
        assert endpoints[0].accepts("/api/x.action")
        assert not endpoints[0].accepts("/other/")
        assert endpoints[1].accepts("/anything")
