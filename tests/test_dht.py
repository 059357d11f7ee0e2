"""
Тесты для DHT модуля
"""

import time

import pytest

from instrumented_swarm.dht.dht import DHT
from instrumented_swarm.dht.node import DHTNode, NodeID, peer_id
from instrumented_swarm.dht.routing_table import KBucket, OrderedNodeSet, RoutingTable
from instrumented_swarm.exceptions import NodeNotFoundError


def test_peer_id():
    """Тест идентификатора по адресу"""
    node_id = peer_id("127.0.0.1", 49737)
    assert len(node_id) == 32
    assert peer_id("127.0.0.1", 49737) == node_id
    assert peer_id("127.0.0.1", 49738) != node_id
    assert peer_id("127.0.0.2", 49737) != node_id
    assert len(peer_id("::1", 8080)) == 32


def test_peer_id_invalid():
    """Тест некорректного адреса"""
    with pytest.raises(ValueError):
        peer_id("localhost", 8080)
    with pytest.raises(ValueError):
        peer_id("127.0.0.1", 70000)


def test_node_id():
    """Тест создания Node ID"""
    node_id = NodeID.from_address("10.0.0.1", 1234)
    assert node_id.id == peer_id("10.0.0.1", 1234)
    assert len(node_id.hex()) == 64

    with pytest.raises(ValueError):
        NodeID(id=b"\x00" * 20)


def test_node_id_distance():
    """Тест вычисления расстояния между Node ID"""
    id1 = NodeID(id=b"\x00" * 31 + b"\x01")
    id2 = NodeID(id=b"\x00" * 31 + b"\x02")

    distance = id1.distance_to(id2)
    assert len(distance) == 32
    assert distance[-1] == 0x03


def test_ordered_node_set_links():
    """Тест связей упорядоченного множества"""
    nodes = OrderedNodeSet()
    a = DHTNode.from_address("127.0.0.1", 1)
    b = DHTNode.from_address("127.0.0.1", 2)
    c = DHTNode.from_address("127.0.0.1", 3)

    for node in (a, b, c):
        assert nodes.add(node) is True
    assert nodes.add(a) is False

    assert list(nodes) == [a, b, c]
    assert a.next is b and b.prev is a and b.next is c and c.prev is b
    assert nodes.head is a and nodes.tail is c

    nodes.move_to_tail(a)
    assert list(nodes) == [b, c, a]

    assert nodes.remove(c) is True
    assert c.prev is None and c.next is None
    assert list(nodes) == [b, a]
    assert nodes.remove(c) is False
    assert len(nodes) == 2


def test_kbucket():
    """Тест k-бакета"""
    bucket = KBucket(k=3)
    for port in range(3):
        assert bucket.add_node(DHTNode.from_address("127.0.0.1", 8000 + port)) is True

    assert bucket.is_full() is True
    assert bucket.add_node(DHTNode.from_address("127.0.0.1", 8003)) is False

    # Повторное добавление - перенос в конец
    first = bucket.get_nodes()[0]
    assert bucket.add_node(first) is True
    assert bucket.get_nodes()[-1] is first


def test_routing_table():
    """Тест таблицы маршрутизации"""
    own_id = NodeID.from_address("127.0.0.1", 9000)
    table = RoutingTable(own_id, k=20)

    # Себя не добавляем
    assert table.add_node(DHTNode(node_id=own_id, host="127.0.0.1", port=9000)) is False

    nodes = [DHTNode.from_address("127.0.0.1", 9001 + i) for i in range(5)]
    for node in nodes:
        assert table.add_node(node) is True

    assert len(table) == 5
    assert len(table.to_array()) == 5
    assert table.has(nodes[0].node_id.id)
    assert table.get(nodes[0].node_id.id) is nodes[0]

    # Тот же адрес - та же запись
    assert table.add_node(DHTNode.from_address("127.0.0.1", 9001)) is True
    assert len(table) == 5

    closest = table.find_closest_nodes(nodes[2].node_id, count=3)
    assert len(closest) == 3
    assert closest[0] is nodes[2]

    table.remove_node(nodes[0])
    assert len(table) == 4
    assert not table.has(nodes[0].node_id.id)
    with pytest.raises(NodeNotFoundError):
        table.remove_node(nodes[0])


def test_routing_table_replaces_stale_node():
    """Тест замены устаревшего узла в полном бакете"""
    own_id = NodeID(id=b"\x00" * 32)
    table = RoutingTable(own_id, k=1)

    # Оба id начинаются с единичного бита - один и тот же бакет
    old = DHTNode(node_id=NodeID(id=b"\x80" + b"\x00" * 31), host="10.0.0.1", port=1)
    new = DHTNode(node_id=NodeID(id=b"\x80" + b"\x01" * 31), host="10.0.0.2", port=2)

    assert table.add_node(old) is True
    assert table.add_node(new) is False

    old.last_seen = time.time() - 7200
    assert table.add_node(new) is True
    assert table.to_array() == [new]


def test_dht_add_and_remove():
    """Тест локального представления DHT"""
    dht = DHT(host="127.0.0.1", port=0)
    assert dht.bootstrapped is False

    dht.bind("127.0.0.1", 5000)
    assert (dht.host, dht.port) == ("127.0.0.1", 5000)
    assert dht.bootstrapped is True

    node = dht.add_node("127.0.0.1", 5001)
    assert node is not None
    assert node.node_id.id == peer_id("127.0.0.1", 5001)
    assert len(dht.nodes) == 1

    assert dht.remove_node("127.0.0.1", 5001) is True
    assert dht.remove_node("127.0.0.1", 5001) is False
    assert len(dht.nodes) == 0
