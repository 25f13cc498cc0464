import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .config import Settings, set_global_seed, print_environment_info
from .config.defaults import MODEL_TYPES
from .core import EditTransducer, load_model, save_model
from .data import (
    AlignedString,
    ArpabetPhoneticDictionary,
    CharacterAlphabet,
    PairCorpus,
    build_pairs,
    collect_tokens,
    read_alias_file,
)
from .errors import EditTransducerError, UnknownSymbol

LOG_DIR = Path("logs")

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False,
                   log_file: Optional[Path] = None,
                   log_dir: Path = LOG_DIR) -> None:
    """Configure root logger to log to stdout and a log file.

    Args:
        verbose: If ``True`` set console log level to ``DEBUG`` else ``INFO``.
        log_file: Optional path to a log file. If ``None`` a timestamped file is
            created under ``log_dir``.
        log_dir: Directory for timestamped log files.
    """
    if log_file is None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"edit_transducer_{timestamp}.log"

    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handlers = []

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(console_handler)

    # File handler (always DEBUG for maximum detail)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers)
    logging.debug("Logging initialised. Log file: %s", log_file)


def _load_settings(args: argparse.Namespace) -> Settings:
    """Settings from ``--config`` or ``--preset``, with command-line overrides applied.

    Raises:
        ValueError: If the model type is unknown or a file has unknown keys.
        FileNotFoundError: If the configuration file does not exist.
    """
    if args.config:
        settings = Settings.from_file(args.config)
    else:
        settings = Settings.from_preset(args.preset)

    overrides = {}
    if args.flip:
        overrides['flip'] = True
    if args.all_aliases:
        overrides['use_all_aliases'] = True
    if args.model_type is not None:
        overrides['model_type'] = args.model_type
    if args.seed is not None:
        overrides['random_seed'] = args.seed
    if overrides:
        settings = settings.update(**overrides)

    if settings.model_type not in MODEL_TYPES:
        raise ValueError(f"Unknown model type: {settings.model_type!r}. Available: {MODEL_TYPES}")
    return settings


def _load_corpus(path: str,
                 settings: Settings,
                 alphabet: CharacterAlphabet,
                 aligner: Optional[ArpabetPhoneticDictionary]) -> PairCorpus:
    table = read_alias_file(path,
                            min_length=settings.min_name_length,
                            drop_non_ascii=settings.drop_non_ascii)
    corpus = build_pairs(table, alphabet, aligner=aligner,
                         flip=settings.flip, use_all_aliases=settings.use_all_aliases,
                         max_length=settings.max_string_length)
    logger.info("Built %d training pairs from %s", len(corpus), path)
    return corpus


# -----------------------------------------------------------------------------
# Sub-command implementations
# -----------------------------------------------------------------------------

def _cmd_train(args: argparse.Namespace) -> int:
    """Entry point for the ``train`` sub-command."""
    settings = _load_settings(args)
    if settings.random_seed is not None:
        set_global_seed(settings.random_seed)

    aligner = None
    if args.dict:
        aligner = ArpabetPhoneticDictionary()
        aligner.load(args.dict)

    if args.init:
        # Continue from a saved model; its alphabet cannot grow
        model = load_model(args.init)
        model.min_iterations = settings.min_iterations
        model.max_iterations = settings.max_iterations
        model.convergence_threshold = settings.convergence_threshold
        alphabet = model.alphabet
        alphabet.freeze()
        logger.info("Initialised from %s (%d symbols)", args.init, len(alphabet))
    else:
        # Every string is encoded before the model fixes the alphabet size
        alphabet = CharacterAlphabet()

    train = _load_corpus(args.train, settings, alphabet, aligner)
    if len(train) == 0:
        logger.error("No training pairs in %s", args.train)
        return 1
    dev = _load_corpus(args.dev, settings, alphabet, aligner) if args.dev else None

    if not args.init:
        alphabet.freeze()
        logger.info("Alphabet frozen with %d symbols", len(alphabet))
        model = EditTransducer.from_settings(alphabet, settings)

    if dev is not None and len(dev) > 0:
        results = model.train(train.inputs, train.outputs, train.weights,
                              dev_inputs=dev.inputs, dev_outputs=dev.outputs,
                              dev_weights=dev.weights)
    else:
        results = model.train(train.inputs, train.outputs, train.weights)
    logger.info("Training finished after %d iterations (converged=%s, LL=%.4f)",
                results.n_iterations, results.converged, results.final_log_likelihood)

    path = save_model(model, settings.resolve_output(args.output))
    print(path)

    if args.plot:
        from .viz import plot_training_history, save_figure  # lazy import

        fig = plot_training_history(results)
        written = save_figure(fig, settings.resolve_output(args.plot),
                              formats=settings.export_formats, dpi=settings.figure_dpi)
        for plot_path in written:
            logger.info("Training history written to %s", plot_path)
    return 0


def _read_pair_file(path: str) -> List[Tuple[Optional[str], str]]:
    """Read ``input<TAB>output`` lines; a line without a tab has an absent input."""
    pairs = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        if "\t" in line:
            source, target = line.split("\t", 1)
            pairs.append((source, target))
        else:
            pairs.append((None, line))
    return pairs


def _cmd_score(args: argparse.Namespace) -> int:
    """Entry point for the ``score`` sub-command."""
    model = load_model(args.model)
    alphabet = model.alphabet
    alphabet.freeze()

    if args.pairs:
        pairs = _read_pair_file(args.pairs)
    elif args.target is not None:
        pairs = [(args.source, args.target)]
    else:
        logger.error("Give INPUT OUTPUT or --pairs FILE")
        return 1

    n_unknown = 0
    for source, target in pairs:
        try:
            x = None if source is None else AlignedString(source, alphabet)
            y = AlignedString(target, alphabet)
        except UnknownSymbol as exc:
            logger.warning("Cannot score %r -> %r: %s", source, target, exc)
            print(f"{source or ''}\t{target}\tnan")
            n_unknown += 1
            continue
        print(f"{source or ''}\t{target}\t{model.logp(x, y):.6f}")

    if n_unknown:
        logger.warning("%d of %d pairs contained unknown characters", n_unknown, len(pairs))
    return 0


def _cmd_dump_tokens(args: argparse.Namespace) -> int:
    """Entry point for the ``dump-tokens`` sub-command."""
    table = read_alias_file(args.train, min_length=args.min_length)
    tokens = sorted(collect_tokens(table, min_length=args.min_length))

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "a", encoding="utf-8") as f:
        for token in tokens:
            f.write(token + "\n")
    logger.info("Appended %d tokens to %s", len(tokens), output)
    return 0


def _cmd_env(args: argparse.Namespace) -> int:
    """Entry point for the ``env`` sub-command."""
    print_environment_info()
    return 0


# -----------------------------------------------------------------------------
# Argument parsing
# -----------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edit-transducer",
        description="Train and apply stochastic edit-distance models for name matching",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging output.",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=LOG_DIR,
        help="Directory for timestamped log files.",
    )

    sub_parsers = parser.add_subparsers(dest="command", required=True)

    # train -------------------------------------------------------------------
    train_parser = sub_parsers.add_parser("train", help="Train a model on an alias file")
    train_parser.add_argument("--train", required=True, help="Tab-separated alias file.")
    train_parser.add_argument("--dev", help="Held-out alias file for early stopping.")
    train_parser.add_argument("--dict", help="ARPAbet phonetic dictionary file.")
    train_parser.add_argument("--init", help="Saved model (.npz) to continue training from.")
    train_parser.add_argument("--config", help="TOML/YAML/JSON configuration file.")
    train_parser.add_argument("--preset", default="default", help="Preset used without --config.")
    train_parser.add_argument("--model-type", default=None, help="Model family (only 'backoff').")
    train_parser.add_argument("--seed", type=int, default=None, help="Random seed for alias sampling.")
    train_parser.add_argument("--flip", action="store_true",
                              help="Map canonical names to aliases instead of the reverse.")
    train_parser.add_argument("--all-aliases", action="store_true",
                              help="Use every alias instead of one random alias per entity.")
    train_parser.add_argument("--output", required=True,
                              help="Where to write the model (.npz); relative paths go under output_dir.")
    train_parser.add_argument("--plot",
                              help="Training history figure; one file per configured export format.")
    train_parser.set_defaults(func=_cmd_train)

    # score -------------------------------------------------------------------
    score_parser = sub_parsers.add_parser("score", help="Print log p(output | input)")
    score_parser.add_argument("--model", required=True, help="Model written by 'train'.")
    score_parser.add_argument("--pairs", help="File of input<TAB>output lines.")
    score_parser.add_argument("source", nargs="?", help="Input string.")
    score_parser.add_argument("target", nargs="?", help="Output string.")
    score_parser.set_defaults(func=_cmd_score)

    # dump-tokens -------------------------------------------------------------
    dump_parser = sub_parsers.add_parser("dump-tokens",
                                         help="Append name tokens for building a phonetic dictionary")
    dump_parser.add_argument("--train", required=True, help="Tab-separated alias file.")
    dump_parser.add_argument("--output", required=True, help="Token file to append to.")
    dump_parser.add_argument("--min-length", type=int, default=3, help="Shortest token kept.")
    dump_parser.set_defaults(func=_cmd_dump_tokens)

    # env ---------------------------------------------------------------------
    env_parser = sub_parsers.add_parser("env", help="Show dependency versions")
    env_parser.set_defaults(func=_cmd_env)

    return parser


# -----------------------------------------------------------------------------
# Main entry point
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point. Parse ``argv`` and dispatch to sub-command implementation."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging must be set up *after* parsing to respect --verbose flag.
    _setup_logging(verbose=args.verbose, log_dir=args.log_dir)

    try:
        exit_code = args.func(args)
    except (EditTransducerError, ValueError, FileNotFoundError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
