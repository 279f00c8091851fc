"""
Tests for building and caching record descriptors.
"""
import threading
from dataclasses import dataclass, field
from typing import NewType, Optional

import pytest
from meddler import ConfigurationError, Mapper, MeddlerRegistry
from meddler import UnknownMeddlerError, column
from meddler.descriptor import DescriptorCache, build_descriptor
from meddler.meddlers import IdentityMeddler, registry

from tests.fixtures.records import EmbedPerson, Metadata, Person, SubMeta

UserId = NewType('UserId', int)


@dataclass
class Node:
    value: int = 0
    child: Optional['Node'] = None


def test_columns_in_declaration_order(mapper):
    """Skipped and unexported fields produce no column"""
    descriptor = mapper.get_descriptor(Person)
    assert descriptor.columns == ('id', 'name', 'email', 'age')
    assert descriptor.pk == 'id'
    assert descriptor.fields['age'].meddler is registry.get('zeroisnull')
    assert descriptor.fields['name'].meddler is registry.get('identity')
    assert 'ephemeral' not in descriptor.fields


def test_tag_defaults_to_field_name():
    @dataclass
    class Plain:
        title: str = ''
        count: int = column(',zeroisnull', default=0)

    descriptor = build_descriptor(Plain, registry)
    assert descriptor.columns == ('title', 'count')
    assert descriptor.pk == ''
    assert descriptor.pk_field() is None


def test_flattening_composed_shapes(mapper):
    """Outer, directly composed and optionally composed fields are all columns"""
    descriptor = mapper.get_descriptor(EmbedPerson)
    assert descriptor.columns == ('id', 'name', 'height', 'Email', 'Age', 'closed')
    assert descriptor.pk == 'id'

    assert descriptor.fields['id'].path == (0, 0)
    assert descriptor.fields['id'].attrs == ('meta', 'id')
    assert descriptor.fields['height'].path == (0, 2, 0)
    assert descriptor.fields['height'].composed == (Metadata, SubMeta)
    assert descriptor.fields['Email'].path == (2,)
    assert descriptor.fields['Age'].path == (4,)
    assert descriptor.fields['closed'].path == (5,)
    assert descriptor.fields['closed'].meddler is registry.get('utctimez')


def test_flattened_field_access():
    """Reads through a None composition give None; writes allocate it"""
    descriptor = build_descriptor(EmbedPerson, registry)
    person = EmbedPerson()
    height = descriptor.fields['height']

    assert person.meta.sub is None
    assert height.get(person) is None

    height.set(person, 180)
    assert person.meta.sub == SubMeta(height=180)
    assert height.get(person) == 180


def test_duplicate_primary_key():
    @dataclass
    class TwoKeys:
        a: int = column('a,pk', default=0)
        b: int = column('b,pk', default=0)

    with pytest.raises(ConfigurationError, match='already found'):
        build_descriptor(TwoKeys, registry)


def test_duplicate_primary_key_through_composition():
    @dataclass
    class Outer:
        meta: Metadata = field(default_factory=Metadata)
        other: int = column('other,pk', default=0)

    with pytest.raises(ConfigurationError, match='already found'):
        build_descriptor(Outer, registry)


@pytest.mark.parametrize('annotation', [float, str, bool, Optional[int], int | None])
def test_primary_key_must_be_plain_integer(annotation):
    @dataclass
    class BadKey:
        id: annotation = column('id,pk', default=None)

    with pytest.raises(ConfigurationError):
        build_descriptor(BadKey, registry)


def test_primary_key_newtype():
    @dataclass
    class Account:
        id: UserId = column('id,pk', default=UserId(0))

    assert build_descriptor(Account, registry).pk == 'id'


def test_unknown_meddler():
    @dataclass
    class Unknown:
        value: str = column('value,nosuchmeddler', default='')

    with pytest.raises(UnknownMeddlerError, match='nosuchmeddler'):
        build_descriptor(Unknown, registry)


def test_duplicate_column():
    @dataclass
    class Dup:
        a: str = column('x', default='')
        b: str = column('x', default='')

    with pytest.raises(ConfigurationError, match='multiple fields for column x'):
        build_descriptor(Dup, registry)


def test_duplicate_column_through_composition():
    @dataclass
    class Outer:
        sub: SubMeta = field(default_factory=SubMeta)
        height: int = 0

    with pytest.raises(ConfigurationError, match='height'):
        build_descriptor(Outer, registry)


def test_tagged_dataclass_field_is_a_column():
    """A tag turns a dataclass-typed field into a plain column"""
    @dataclass
    class Holder:
        payload: SubMeta = column('payload,json', default_factory=SubMeta)

    descriptor = build_descriptor(Holder, registry)
    assert descriptor.columns == ('payload',)


@pytest.mark.parametrize('shape', [int, object, 'Person', Person(), None])
def test_non_record_shape(shape):
    with pytest.raises(ConfigurationError):
        build_descriptor(shape, registry)


def test_descriptor_for_instance_requires_record(mapper):
    with pytest.raises(ConfigurationError, match='expected a record instance'):
        mapper.descriptor(Person)
    with pytest.raises(ConfigurationError, match='non-record'):
        mapper.descriptor({'id': 1})


def test_cache_is_idempotent(mapper):
    first = mapper.get_descriptor(Person)
    second = mapper.get_descriptor(Person)
    assert first is second
    assert Person in mapper.cache


def test_concurrent_builds_agree():
    cache = DescriptorCache()
    results = []

    def build():
        results.append(cache.get(EmbedPerson, registry))

    threads = [threading.Thread(target=build) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8
    assert all(r is results[0] for r in results)
    assert len(cache) == 1


def test_failed_build_is_not_cached():
    isolated = MeddlerRegistry({'identity': IdentityMeddler()})

    @dataclass
    class Late:
        value: str = column('value,shout', default='')

    m = Mapper(registry=isolated)
    with pytest.raises(UnknownMeddlerError):
        m.get_descriptor(Late)
    assert Late not in m.cache

    isolated.register('shout', IdentityMeddler())
    assert m.get_descriptor(Late).columns == ('value',)


def test_isolated_registry_gets_isolated_cache():
    """Identity is bound even when the registry does not define it"""
    m = Mapper(registry=MeddlerRegistry())
    assert m.cache is not Mapper().cache

    descriptor = m.get_descriptor(SubMeta)
    assert isinstance(descriptor.fields['height'].meddler, IdentityMeddler)


def test_cyclic_composition_is_rejected():
    with pytest.raises(ConfigurationError, match='cyclic'):
        build_descriptor(Node, registry)
