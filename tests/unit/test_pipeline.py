"""
Tests for column lists, placeholders and meddled values.
"""
import logging
from dataclasses import dataclass

import pytest
from meddler import ConfigurationError, Mapper, Meddler, MeddlerRegistry
from meddler import PipelineError, PreconditionError, ShapeMismatchError
from meddler import Target, column
from meddler.meddlers import default_registry

from tests.fixtures.records import EmbedPerson, Item, Person, SubMeta, Tag


def test_columns(mapper):
    person = Person()
    assert mapper.columns(person) == ['id', 'name', 'email', 'age']
    assert mapper.columns(person, include_pk=False) == ['name', 'email', 'age']
    assert mapper.columns_quoted(person) == '"id","name","email","age"'


def test_primary_key(mapper):
    assert mapper.primary_key(Person(id=7)) == ('id', 7)
    assert mapper.primary_key(Tag()) == ('', 0)


def test_primary_key_through_composition(mapper):
    person = EmbedPerson()
    mapper.set_primary_key(person, 12)
    assert person.meta.id == 12
    assert mapper.primary_key(person) == ('id', 12)


def test_primary_key_holding_non_integer(mapper):
    with pytest.raises(PreconditionError):
        mapper.primary_key(Person(id='7'))


def test_set_primary_key_without_pk(mapper):
    with pytest.raises(ConfigurationError, match='no primary key'):
        mapper.set_primary_key(Tag(), 1)


def test_values_run_pre_write(mapper):
    person = Person(id=3, name='ann', email='a@x', age=0)
    assert mapper.values(person) == [3, 'ann', 'a@x', None]
    assert mapper.values(person, include_pk=False) == ['ann', 'a@x', None]


def test_some_values_missing_column_is_null(mapper):
    person = Person(name='ann')
    assert mapper.some_values(person, ['name', 'nickname']) == ['ann', None]


def test_some_values_missing_column_debug(debug_mapper, caplog):
    caplog.set_level(logging.DEBUG, logger='meddler.pipeline')
    debug_mapper.some_values(Person(), ['nickname'])
    assert 'column [nickname] not found' in caplog.text


def test_pre_write_failure_names_column():
    class Broken(Meddler):
        def post_read(self, ref, target):
            ref.set(target.value)

        def pre_write(self, value):
            raise ValueError('cannot store')

    reg = default_registry()
    reg.register('broken', Broken())

    @dataclass
    class Fragile:
        good: str = column('good', default='ok')
        bad: str = column('bad,broken', default='x')

    m = Mapper(registry=reg)
    with pytest.raises(PipelineError, match=r'column \[bad\]') as exc:
        m.values(Fragile())
    assert exc.value.column == 'bad'
    assert isinstance(exc.value.__cause__, ValueError)


def test_placeholders_follow_values(mapper, sqlite_mapper):
    person = Person()
    assert mapper.placeholders(person) == ['$1', '$2', '$3', '$4']
    assert mapper.placeholders_string(person, include_pk=False) == '$1,$2,$3'
    assert sqlite_mapper.placeholders_string(person, include_pk=False) == '?,?,?'
    assert len(mapper.placeholders(person)) == len(mapper.values(person))


def test_targets_and_write_targets(mapper):
    person = Person()
    names = ['id', 'name', 'age', 'extra']
    scanned = mapper.targets(person, names)
    assert len(scanned) == 4
    assert all(isinstance(t, Target) for t in scanned)

    for target, value in zip(scanned, [4, 'bob', None, 'ignored']):
        target.value = value
    mapper.write_targets(person, names, scanned)

    assert person == Person(id=4, name='bob', age=0)


def test_write_targets_into_composed_shape(mapper):
    person = EmbedPerson()
    names = ['id', 'height', 'Email']
    scanned = mapper.targets(person, names)
    for target, value in zip(scanned, [1, 170, 'e@x']):
        target.value = value
    mapper.write_targets(person, names, scanned)

    assert person.meta.id == 1
    assert person.meta.sub == SubMeta(height=170)
    assert person.Email == 'e@x'


def test_write_targets_count_mismatch(mapper):
    with pytest.raises(ShapeMismatchError, match='mismatch'):
        mapper.write_targets(Item(), ['id', 'name'], [Target(1)])


def test_post_read_failure_names_column(mapper):
    person = EmbedPerson()
    scanned = mapper.targets(person, ['closed'])
    scanned[0].value = 42
    with pytest.raises(PipelineError, match=r'column \[closed\]'):
        mapper.write_targets(person, ['closed'], scanned)


def test_targets_debug_logs_unmatched(debug_mapper, caplog):
    caplog.set_level(logging.DEBUG, logger='meddler.pipeline')
    debug_mapper.targets(Item(), ['id', 'extra'])
    assert 'column [extra] not found' in caplog.text
    assert 'field for column [name]' in caplog.text


def test_targets_silent_without_debug(mapper, caplog):
    caplog.set_level(logging.DEBUG, logger='meddler.pipeline')
    mapper.targets(Item(), ['id', 'extra'])
    assert caplog.text == ''


def test_non_record_source(mapper):
    with pytest.raises(ConfigurationError):
        mapper.values(42)
    with pytest.raises(ConfigurationError):
        mapper.columns(Person)


def test_isolated_registry_rejects_unknown_tags():
    m = Mapper(registry=MeddlerRegistry())
    with pytest.raises(ConfigurationError):
        m.columns(Person())
