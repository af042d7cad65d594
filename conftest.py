import pytest

from stymie.utils.core import init_store, session
from stymie.utils.dataModels import Settings, StoreConfig
from stymie.utils.shred import ShredResult


@pytest.fixture
def fast_config():
    # Smallest Argon2 costs the library accepts; real stores use the defaults.
    return StoreConfig(hash="sha256", t_cost=1, m_cost_kib=8, parallelism=1)


@pytest.fixture
def settings(tmp_path):
    return Settings(root=tmp_path / ".stymie.d", passphrase="correct horse battery staple", editor="true")


@pytest.fixture
def store(settings, fast_config):
    init_store(settings, fast_config)
    return settings


@pytest.fixture
def shredded():
    return []


@pytest.fixture
def ctx(store, shredded):
    def fake_shred(path):
        shredded.append(path.name)
        path.unlink()
        return ShredResult(path, 0, secure=False)

    with session(store) as c:
        c.editor = lambda path: 0
        c.confirm = lambda message: True
        c.shred = fake_shred
        yield c
