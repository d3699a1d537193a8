import re
from typing import Optional
from . import TokenizerAbstract, TokenizerConfig
from .stopwords import get_default_stopwords


class SimpleTokenizer(TokenizerAbstract):
    """
    Regex-based analyzer: lowercases, splits on non-alphanumerics, drops stopwords
    and tokens shorter than `min_len`.

    Examples:
    - "Apple pie recipes" -> ["apple", "pie", "recipes"]
    - "the 2 towers" -> ["towers"] (stopword and short token dropped)
    """
    _word_re = re.compile(r"[A-Za-z0-9]+")

    def __init__(
        self,
        config: Optional[TokenizerConfig] = None,
        stopwords: Optional[set[str]] = None,
    ):
        self.config = config or TokenizerConfig()
        if not self.config.remove_stopwords:
            self.stopwords: set[str] = set()
        else:
            self.stopwords = stopwords if stopwords is not None else get_default_stopwords()

        # Fast path: skip per-token processing (no ASCII folding, number normalization, or stemming)
        self._fast_path = (
            not self.config.ascii_fold
            and not self.config.number_normalize
            and not self.config.stemming
        )

    def tokenize(self, text: str) -> list[str]:
        if not text:
            return []

        if self.config.lowercase:
            text = text.lower()
        raw_tokens = self._word_re.findall(text)

        if self._fast_path:
            min_len = self.config.min_len
            return [t for t in raw_tokens if t not in self.stopwords and len(t) >= min_len]

        return self._post_process_tokens(raw_tokens, self.config, self.stopwords)
