import time

from cosmodb.domain.services.id_generator import DocumentIdGenerator


def test_generate_format():
    document_id = DocumentIdGenerator.generate()
    timestamp, suffix = document_id.split("-")

    assert DocumentIdGenerator.validate(document_id)
    assert len(suffix) == DocumentIdGenerator.SUFFIX_LENGTH
    assert set(suffix) <= set(DocumentIdGenerator.ALPHABET)
    assert abs(int(timestamp) - int(time.time() * 1000)) < 60_000


def test_generate_is_unique():
    ids = {DocumentIdGenerator.generate() for _ in range(1000)}
    assert len(ids) == 1000


def test_validate():
    assert DocumentIdGenerator.validate("1760781234567-abc123")
    assert not DocumentIdGenerator.validate("t1")
    assert not DocumentIdGenerator.validate("123-ABC")
    assert not DocumentIdGenerator.validate("")
