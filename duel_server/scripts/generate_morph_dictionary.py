"""
Curate the bundled morph dictionary.

Reads a raw word list (a local file or a download), keeps the alphabetic
words of the duel length, prunes sparsely connected words and writes the
largest connected component as {"words": [...]}.
"""

import json
import os
from pathlib import Path
from typing import Iterable, List, Optional

import requests
import typer
from rich.console import Console

from ..config.game_settings import WORD_LENGTH
from ..services.word_graph import WordGraphIndex

DEFAULT_WORDLIST_URL = 'https://raw.githubusercontent.com/dwyl/english-words/master/words_alpha.txt'
DEFAULT_OUTPUT = Path(__file__).resolve().parent.parent / 'config' / 'words.json'

app = typer.Typer(help="Build the morph dictionary from a raw word list")
console = Console()


class CurationError(Exception):
    """The word list produced no usable dictionary."""


def filter_words(lines: Iterable[str], word_length: int = WORD_LENGTH) -> List[str]:
    """Unique upper-cased alphabetic words of word_length, sorted."""
    words = set()
    for line in lines:
        word = line.strip()
        if len(word) == word_length and word.isascii() and word.isalpha():
            words.add(word.upper())
    return sorted(words)


def curate_words(words: Iterable[str], min_degree: int = 2, word_length: int = WORD_LENGTH) -> List[str]:
    """Prune words below min_degree, then keep the largest connected component."""
    graph = WordGraphIndex(words, word_length)
    if min_degree > 1:
        graph = graph.pruned(min_degree)

    component = graph.largest_component()
    if not component:
        raise CurationError("No connected component left. Try lowering the minimum degree.")
    return component


def read_word_list(input_path: Optional[Path], url: str, timeout: float = 30.0) -> str:
    if input_path is not None:
        return input_path.read_text(encoding='utf-8')

    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.text


@app.command()
def generate(
    input_path: Optional[Path] = typer.Option(None, "--input", "-i", help="Local word list, one word per line"),
    url: str = typer.Option(
        os.getenv('WORDLIST_URL', DEFAULT_WORDLIST_URL), help="Word list to download when --input is not given"
    ),
    min_degree: int = typer.Option(2, "--min-degree", min=1, help="Minimum neighbor count a word must keep"),
    output: Path = typer.Option(DEFAULT_OUTPUT, "--output", "-o", help="Where to write the dictionary JSON"),
):
    """Generate the dictionary file the duel server loads."""
    try:
        raw = read_word_list(input_path, url)
    except (OSError, requests.RequestException) as e:
        console.print(f"[red]Error reading word list: {e}[/red]")
        raise typer.Exit(1)

    words = filter_words(raw.splitlines())
    if not words:
        console.print(f"[red]Error: no {WORD_LENGTH}-letter words found in the input[/red]")
        raise typer.Exit(1)
    console.print(f"Loaded {len(words)} candidate words")

    try:
        curated = curate_words(words, min_degree)
    except CurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps({'words': curated}, indent=2) + '\n', encoding='utf-8')
    console.print(f"[green]Wrote {len(curated)} words to {output}[/green]")


if __name__ == "__main__":
    app()
