import pytest

from pagemill.pdf_utils.nametable import NameTable, name_hash


def test_insert_and_lookup():
    table = NameTable()
    table.insert('/Type', 1)
    table.insert('/Subtype', 2)
    assert table.lookup('/Type') == 1
    assert table.lookup('/Subtype') == 2
    assert len(table) == 2


def test_overwrite_keeps_length():
    table = NameTable()
    table.insert('/Type', 1)
    table.insert('/Type', 2)
    assert len(table) == 1
    assert table.lookup('/Type') == 2


def test_missing_key():
    table = NameTable()
    table.insert('/A', 1)
    with pytest.raises(KeyError):
        table.lookup('/B')
    assert '/B' not in table
    assert '/A' in table


def test_growth():
    table = NameTable()
    assert table.capacity == 8
    for i in range(6):
        table.insert(f'/K{i}', i)
    assert table.capacity == 8
    table.insert('/K6', 6)
    assert table.capacity == 16
    assert all(table.lookup(f'/K{i}') == i for i in range(7))


def test_many_keys():
    table = NameTable()
    for i in range(1000):
        table.insert(f'/Name{i}', i)
    assert len(table) == 1000
    assert all(table.lookup(f'/Name{i}') == i for i in range(1000))
    assert len(table) / table.capacity < 0.75


def test_remove():
    table = NameTable()
    for i in range(20):
        table.insert(f'/K{i}', i)
    for i in range(0, 20, 2):
        table.remove(f'/K{i}')
    assert len(table) == 10
    for i in range(20):
        if i % 2:
            assert table.lookup(f'/K{i}') == i
        else:
            assert f'/K{i}' not in table
    with pytest.raises(KeyError):
        table.remove('/K0')


def test_iteration_order_is_deterministic():
    keys = [f'/Key{i}' for i in range(50)]
    t1 = NameTable()
    t2 = NameTable()
    for k in keys:
        t1.insert(k, None)
        t2.insert(k, None)
    assert list(t1.keys()) == list(t2.keys())
    assert sorted(t1.keys()) == sorted(keys)


def test_hash_includes_terminator():
    assert name_hash(b'') != name_hash(b'\x00')
    assert name_hash(b'A') != name_hash(b'A\x00')


def test_hash_is_64_bit():
    for key in (b'', b'Type', b'x' * 100):
        assert 0 <= name_hash(key) < 2 ** 64


def test_hash_ignores_leading_slash():
    # keys with and without the slash land on the same probe path, but are
    # still distinct entries
    table = NameTable()
    table.insert('/A', 1)
    table.insert('A', 2)
    assert len(table) == 2
    assert table.lookup('/A') == 1
    assert table.lookup('A') == 2
