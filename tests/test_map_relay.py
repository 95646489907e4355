import pytest

from livesrt.map_relay import RelayConf, RelayMap
from livesrt.relay_managers import PullerManager, PusherManager, RelayMode


def _never(url):
    return False


def test_add_relay_conf_parses_mode_and_upstreams():
    relays = RelayMap()
    conf = RelayConf(type="pull", mode="loop", upstreams="127.0.0.1:9090?streamid=a  host2:8080",
                     reconnect_interval=3, idle_streams_timeout=20)
    relays.add_relay_conf("example.com/live", conf)
    info = relays.get_relay_conf("example.com/live")
    assert info.mode is RelayMode.LOOP
    assert info.upstreams == ["127.0.0.1:9090?streamid=a", "host2:8080"]
    assert info.reconnect_interval == 3
    assert info.idle_streams_timeout == 20
    assert info.type == "pull"


@pytest.mark.parametrize("mode,expected", [
    ("loop", RelayMode.LOOP),
    ("all", RelayMode.ALL),
    ("hash", RelayMode.HASH),
    ("bogus", RelayMode.HASH),
])
def test_mode_mapping(mode, expected):
    relays = RelayMap()
    info = relays.add_relay_conf("app", RelayConf(mode=mode, upstreams="up"))
    assert info.mode is expected


def test_missing_conf_is_none():
    assert RelayMap().get_relay_conf("nothing") is None


def test_duplicate_conf_rejected():
    relays = RelayMap()
    relays.add_relay_conf("app", RelayConf(upstreams="up"))
    with pytest.raises(ValueError):
        relays.add_relay_conf("app", RelayConf(upstreams="other"))


def test_none_conf_rejected():
    with pytest.raises(ValueError):
        RelayMap().add_relay_conf("app", None)


def test_manager_without_conf_is_none():
    assert RelayMap().add_relay_manager("app", "stream", _never) is None


def test_pull_manager_created_once():
    relays = RelayMap()
    relays.add_relay_conf("host/uplive", RelayConf(type="pull", upstreams="up"))
    first = relays.add_relay_manager("host/uplive", "s1", _never)
    second = relays.add_relay_manager("host/uplive", "s1", _never)
    assert isinstance(first, PullerManager)
    assert first is second
    assert first.key_stream_name == "host/uplive/s1"


def test_push_manager_and_separate_streams():
    relays = RelayMap()
    relays.add_relay_conf("host/uplive", RelayConf(type="push", mode="all", upstreams="up"))
    a = relays.add_relay_manager("host/uplive", "a", _never)
    b = relays.add_relay_manager("host/uplive", "b", _never)
    assert isinstance(a, PusherManager)
    assert a is not b


def test_unknown_type_rejected():
    relays = RelayMap()
    relays.add_relay_conf("app", RelayConf(type="mirror", upstreams="up"))
    with pytest.raises(ValueError):
        relays.add_relay_manager("app", "s", _never)


def test_manager_uses_given_connector():
    urls = []

    def connect(url):
        urls.append(url)
        return True

    relays = RelayMap()
    relays.add_relay_conf("host/uplive", RelayConf(type="pull", mode="loop", upstreams="up1 up2"))
    manager = relays.add_relay_manager("host/uplive", "cam", connect)
    assert manager.start() is True
    assert urls == ["srt://up1/cam"]


def test_clear_forgets_everything():
    relays = RelayMap()
    relays.add_relay_conf("app", RelayConf(type="pull", upstreams="up"))
    first = relays.add_relay_manager("app", "s", _never)
    relays.clear()
    assert relays.get_relay_conf("app") is None
    assert relays.add_relay_manager("app", "s", _never) is None
    relays.add_relay_conf("app", RelayConf(type="pull", upstreams="up"))
    assert relays.add_relay_manager("app", "s", _never) is not first