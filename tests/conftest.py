"""
Fixtures compartidas: fuentes .tmsim de ejemplo.
"""

import pytest


SAMPLE_SOURCE = """\
alphabet: (#ab )
tape: (*ab )

q0(a) -> q0(a)R
q0(b) -> q0(b)R
q0( ) -> q1( )L
q1(a) -> q1(#)L
q1(*) -> q1(*)L
q1( ) -> q2( )R
"""


@pytest.fixture
def sample_source():
    """Seis reglas, 'alphabet: (#ab )' y 'tape: (*ab )'."""
    return SAMPLE_SOURCE


@pytest.fixture
def sample_file(tmp_path, sample_source):
    path = tmp_path / "machine.tmsim"
    path.write_text(sample_source, encoding="utf-8")
    return path


@pytest.fixture
def make_source():
    """Construye un fuente con las declaraciones estándar y las reglas dadas."""
    def _make(*rules, alphabet="#ab ", tape="*ab "):
        header = [f"alphabet: ({alphabet})", f"tape: ({tape})"]
        return "\n".join(header + list(rules)) + "\n"
    return _make
