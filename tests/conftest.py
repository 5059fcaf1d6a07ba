import logging

import pytest

from call_flow.src.call_flow.analysis import SourceFile

ACTIVITY_JAVA = """package com.acme.demo;

public class MainActivity extends AppCompatActivity {
    @Override
    protected void onCreate(Bundle savedInstanceState) {
        super.onCreate(savedInstanceState);
        setContentView(R.layout.activity_main);
        loadUsers();
        if (savedInstanceState != null) {
            restoreState(savedInstanceState);
        }
    }

    private void loadUsers() {
        for (String name : repo.findAll()) {
            render(name);
        }
    }

    private void restoreState(Bundle state) {
        loadUsers();
    }
}
"""

REPOSITORY_KT = """package com.acme.demo

class UserRepository : BaseRepository(), Closeable {
    fun findAll(): List<String> {
        return store.toList()
    }

    private fun render(name: String) = Formatter.format(name)
}
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CALL_FLOW_BACKEND", "CALL_FLOW_LINK_END", "CALL_FLOW_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger("call_flow")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def activity_java():
    return ACTIVITY_JAVA


@pytest.fixture
def repository_kt():
    return REPOSITORY_KT


@pytest.fixture
def sources():
    return [
        SourceFile(path="app/MainActivity.java", text=ACTIVITY_JAVA),
        SourceFile(path="app/UserRepository.kt", text=REPOSITORY_KT),
    ]
