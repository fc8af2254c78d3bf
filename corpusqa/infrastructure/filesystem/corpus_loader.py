"""Loads corpus text from disk and turns it into CorpusItems.

Uses `aiofiles` for async reads. Podcast descriptions are one item per
blank-line separated paragraph; movie text is split into overlapping chunks
with LangChain's RecursiveCharacterTextSplitter.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
from langchain_text_splitters import RecursiveCharacterTextSplitter

from corpusqa.domain.models.common import ChunkText, Corpus
from corpusqa.domain.models.corpus import CorpusItem

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent.parent / "data"
DEFAULT_SOURCES: Dict[Corpus, Path] = {
    Corpus.PODCASTS: DATA_DIR / "podcasts.txt",
    Corpus.MOVIES: DATA_DIR / "movies.txt",
}
DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 50

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


class CorpusLoader:
    """Reads a corpus source file and produces ordered CorpusItems."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        sources: Optional[Dict[Corpus, Path]] = None,
    ):
        self.sources = sources or DEFAULT_SOURCES
        self.splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
        )

    async def read_text(self, path: Path) -> str:
        if not path.is_file():
            raise FileNotFoundError(f"Corpus source not found: {path}")
        async with aiofiles.open(path, mode='r', encoding='utf-8') as f:
            content = await f.read()
        logger.debug(f"Read {len(content)} characters from {path}")
        return content

    def split(self, corpus: Corpus, text: str) -> List[str]:
        """Splits raw corpus text into item texts."""
        if corpus is Corpus.MOVIES:
            chunks = self.splitter.split_text(text)
        else:
            chunks = [p.strip() for p in _PARAGRAPH_BREAK.split(text)]
        chunks = [c for c in chunks if c.strip()]
        logger.info(f"Successfully split {corpus.value} into {len(chunks)} chunks")
        return chunks

    async def load(self, corpus: Corpus, source: Optional[Path] = None) -> List[CorpusItem]:
        """Reads and splits the corpus, numbering items from 1."""
        path = Path(source) if source else self.sources[corpus]
        text = await self.read_text(path)
        return [
            CorpusItem(content=ChunkText(chunk), position=index)
            for index, chunk in enumerate(self.split(corpus, text), start=1)
        ]
