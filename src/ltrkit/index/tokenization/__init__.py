from abc import abstractmethod
import re
from typing import Any, Optional
import unicodedata
from dataclasses import dataclass
from .stopwords import get_default_stopwords
from ltrkit.utils.config import Config


class TokenizerAbstract:
    """Abstract base class for query/document analyzers."""

    @abstractmethod
    def tokenize(self, text: str) -> list[str]:
        pass

    def _post_process_tokens(
        self, tokens: list[str], config: "TokenizerConfig", stopwords: set[str]
    ) -> list[str]:
        """Applies normalization, stemming, stopword removal, and length filtering."""
        out: list[str] = []
        for t in tokens:
            s = normalize_token(t, config)
            if not s:
                continue
            if config.stemming:
                s = simple_stem(s)
            if config.remove_stopwords and s in stopwords:
                continue
            if len(s) < config.min_len:
                continue
            out.append(s)
        return out


@dataclass
class TokenizerConfig:
    lowercase: bool = True
    ascii_fold: bool = True
    min_len: int = 2
    remove_stopwords: bool = True
    stemming: bool = False
    number_normalize: bool = True


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, str):
        return bool(value)
    v = value.strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def normalize_token(token: str, cfg: TokenizerConfig) -> str:
    s = token
    if cfg.lowercase:
        s = s.lower()
    if cfg.ascii_fold:
        s = unicodedata.normalize("NFKD", s).encode("ascii", "ignore").decode("ascii")
    if cfg.number_normalize:
        if any(c.isdigit() for c in s) and "," in s:
            s = re.sub(r"(?<=\d),(?=\d)", "", s)
    return s


def simple_stem(token: str) -> str:
    s = token
    for suf in ("ing", "edly", "ed", "ly", "es", "s"):
        if len(s) > 3 and s.endswith(suf):
            s = s[: -len(suf)]
            break
    return s


def get_tokenizer(cfg: Optional[Config] = None) -> TokenizerAbstract:
    from .simple_tokenizer import SimpleTokenizer

    if cfg is None or cfg.TOKENIZER is None:
        return SimpleTokenizer()

    tk = cfg.TOKENIZER
    tkcfg = TokenizerConfig(
        lowercase=_as_bool(tk.LOWERCASE, True),
        ascii_fold=_as_bool(tk.ASCII_FOLD, True),
        min_len=int(tk.MIN_LEN) if tk.MIN_LEN is not None else 2,
        remove_stopwords=_as_bool(tk.REMOVE_STOPWORDS, True),
        stemming=_as_bool(tk.STEM, False),
        number_normalize=_as_bool(tk.NUMBER_NORMALIZE, True),
    )
    stop = get_default_stopwords() if tkcfg.remove_stopwords else set()
    return SimpleTokenizer(config=tkcfg, stopwords=stop)
