import pytest

from s3_archiver.pipeline import PartBuffer


MIB = 1024 * 1024


def _feed(buffer: PartBuffer, total: int, chunk: int) -> list:
    parts = []
    remaining = total
    while remaining:
        n = min(chunk, remaining)
        buffer.append(b"x" * n)
        parts.extend(buffer.drain_full_parts())
        remaining -= n
    final = buffer.flush_remainder()
    if final is not None:
        parts.append(final)
    return parts


@pytest.mark.parametrize(
    "total_mib,chunk_mib,expected_mib",
    [(25, 1, [10, 10, 5]), (23, 3, [10, 10, 3]), (10, 4, [10])],
)
def test_part_sizes(total_mib, chunk_mib, expected_mib):
    buffer = PartBuffer(10 * MIB)

    parts = _feed(buffer, total_mib * MIB, chunk_mib * MIB)

    assert [p.part_number for p in parts] == list(range(1, len(expected_mib) + 1))
    assert [p.size for p in parts] == [n * MIB for n in expected_mib]
    assert buffer.bytes_appended == total_mib * MIB


def test_exact_multiple_has_no_trailing_part():
    buffer = PartBuffer(4)

    parts = _feed(buffer, 12, 5)

    assert [p.size for p in parts] == [4, 4, 4]
    assert buffer.parts_emitted == 3


def test_single_chunk_larger_than_several_parts():
    buffer = PartBuffer(4)
    buffer.append(b"abcdefghij")

    parts = buffer.drain_full_parts()

    assert [p.payload for p in parts] == [b"abcd", b"efgh"]
    assert buffer.buffered == 2
    final = buffer.flush_remainder()
    assert final is not None
    assert final.part_number == 3
    assert final.payload == b"ij"


def test_concatenated_payloads_reproduce_input():
    data = bytes(range(256)) * 41
    buffer = PartBuffer(100)
    parts = []
    for offset in range(0, len(data), 37):
        buffer.append(data[offset : offset + 37])
        parts.extend(buffer.drain_full_parts())
    final = buffer.flush_remainder()
    if final is not None:
        parts.append(final)

    assert b"".join(p.payload for p in parts) == data
    assert all(p.size == 100 for p in parts[:-1])
    assert 0 < parts[-1].size <= 100


def test_empty_stream_emits_nothing():
    buffer = PartBuffer(10)

    assert buffer.drain_full_parts() == []
    assert buffer.flush_remainder() is None
    assert buffer.parts_emitted == 0


def test_empty_chunks_are_ignored():
    buffer = PartBuffer(10)
    buffer.append(b"")
    buffer.append(b"abc")
    buffer.append(b"")

    assert buffer.buffered == 3
    assert buffer.bytes_appended == 3


def test_flush_twice_raises():
    buffer = PartBuffer(10)
    buffer.append(b"abc")
    buffer.flush_remainder()

    with pytest.raises(RuntimeError):
        buffer.flush_remainder()


def test_append_after_flush_raises():
    buffer = PartBuffer(10)
    buffer.flush_remainder()

    with pytest.raises(RuntimeError):
        buffer.append(b"late")


def test_flush_with_undrained_full_part_raises():
    buffer = PartBuffer(4)
    buffer.append(b"abcdef")

    with pytest.raises(RuntimeError):
        buffer.flush_remainder()


def test_rejects_non_positive_part_size():
    with pytest.raises(ValueError):
        PartBuffer(0)
