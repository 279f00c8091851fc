import logging

import psycopg
import pytest
from meddler import DBAPIExecutor, Mapper
from testcontainers.postgres import PostgresContainer

logger = logging.getLogger(__name__)


@pytest.fixture(scope='session')
def psql_docker(request):
    """Session-scoped PostgreSQL container using testcontainers.

    Skips the requesting tests when no container runtime is available.
    """
    container = PostgresContainer(
        image='postgres:16',
        username='postgres',
        password='postgres',
        dbname='test_db',
        driver=None,
    )

    try:
        container.start()
    except Exception as e:
        logger.warning(f'Error starting postgres container: {e}')
        pytest.skip(f'PostgreSQL container unavailable: {e}')

    logger.info(
        f'PostgreSQL container started at '
        f'{container.get_container_host_ip()}:{container.get_exposed_port(5432)}'
    )

    def finalizer():
        try:
            container.stop()
            logger.info('PostgreSQL container stopped')
        except Exception as e:
            logger.warning(f'Error stopping container: {e}')

    request.addfinalizer(finalizer)
    return container


def stage_test_data(cn):
    cn.execute("""
drop table if exists person, embed_person, document;

create table person (
    id serial primary key,
    name text not null,
    email text not null,
    age integer
);

create table embed_person (
    id serial primary key,
    name text not null,
    height integer,
    "Email" text,
    "Age" integer,
    closed timestamptz
);

create table document (
    id serial primary key,
    title text not null,
    body text,
    packed bytea,
    created text
);
""")


@pytest.fixture
def pg_conn(psql_docker):
    """Autocommit connection with freshly created test tables.
    """
    cn = psycopg.connect(psql_docker.get_connection_url(), autocommit=True)
    try:
        stage_test_data(cn)
        yield cn
    finally:
        cn.close()


@pytest.fixture
def pg_db(pg_conn):
    """Executor over the PostgreSQL test connection"""
    return DBAPIExecutor(pg_conn)


@pytest.fixture
def pg_mapper():
    """Mapper with the PostgreSQL dialect"""
    return Mapper(dialect='postgresql')
