import pytest
import os
import re
from pathlib import Path
from unittest.mock import patch

from pagewise.core.exceptions import ProviderError
from pagewise.research.embeddings import EmbeddingProvider


@pytest.fixture(autouse=True)
def mock_settings_env_vars(tmp_path):
    """Automatically mock HOME and environment variables to ensure test isolation."""
    fake_home = tmp_path / "fake_home"
    fake_home.mkdir()

    with patch("pathlib.Path.home", return_value=fake_home):
        with patch.dict(
            os.environ,
            {
                "HOME": str(fake_home),
                "PAGEWISE_CONFIG_DIR": str(fake_home / ".config" / "pagewise"),
            },
        ):
            yield


VOCABULARY = (
    "admission",
    "requirements",
    "tuition",
    "costs",
    "housing",
    "campus",
    "library",
    "sports",
    "faculty",
    "research",
    "scholarships",
    "deadlines",
)
_WORD_RE = re.compile(r"[a-z]+")


class KeywordProvider(EmbeddingProvider):
    """Deterministic bag-of-words vectors over a fixed vocabulary.

    Texts containing ``FAIL`` raise ``ProviderError``.
    """

    model = "keyword-test"

    def __init__(self, vocabulary=VOCABULARY):
        self.vocabulary = tuple(vocabulary)
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        if "FAIL" in text:
            raise ProviderError("provider unavailable")
        words = _WORD_RE.findall(text.lower())
        return [float(words.count(term)) for term in self.vocabulary]


@pytest.fixture
def keyword_provider():
    return KeywordProvider()


def filler(words, seed="lorem"):
    """Neutral text of ``words`` words outside the test vocabulary."""
    pool = ["lorem", "ipsum", "dolor", "sit", "amet", "consectetur", "adipiscing", "elit"]
    start = pool.index(seed) if seed in pool else 0
    return " ".join(pool[(start + index) % len(pool)] for index in range(words))


@pytest.fixture
def filler_text():
    return filler


@pytest.fixture
def university_html():
    """Five sections; only the third talks about admission requirements."""
    return f"""
    <html><head><title>Example University</title>
    <meta name="description" content="Everything about studying here."></head>
    <body>
      <nav><a href="/">Home</a> <a href="/apply">Apply</a></nav>
      <header>
        <h1>Campus life</h1>
        <p>Our campus offers housing and sports. {filler(30)}</p>
      </header>
      <h2 id="library-info">Library</h2>
      <p>The library supports research around the clock. {filler(30)}</p>
      <h2>Admission requirements</h2>
      <p>Admission requirements include transcripts and essays. {filler(30)}</p>
      <h2>Tuition</h2>
      <p>Tuition costs vary and scholarships reduce costs. {filler(30)}</p>
      <h2>Faculty</h2>
      <p>Our faculty lead research in many fields. {filler(30)}</p>
      <form id="contact" action="/contact" method="post">
        <input type="text" name="email" required placeholder="Email">
        <select name="topic"><option value="a">Admissions</option><option>Other</option></select>
        <textarea name="message">Hi</textarea>
        <button type="submit">Send</button>
      </form>
    </body></html>
    """
