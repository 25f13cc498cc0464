"""Saving and loading trained transducers.

A model is stored as a single ``.npz`` archive: one array per probability
table plus a JSON metadata string holding the alphabet and the
hyperparameters needed to rebuild an equivalent EditTransducer.
"""

import json
import logging
from pathlib import Path
import numpy as np
from typing import Union

from .transducer import EditTransducer
from ..data.alphabet import CharacterAlphabet

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
MODEL_TYPE = 'backoff'


def save_model(transducer: EditTransducer, path: Union[str, Path]) -> Path:
    """Write a transducer's parameters and alphabet to ``path``.

    Returns
    -------
    Path
        The written file (numpy appends ``.npz`` when missing)
    """
    path = Path(path)
    if path.suffix != '.npz':
        path = path.with_suffix(path.suffix + '.npz')
    path.parent.mkdir(parents=True, exist_ok=True)

    metadata = {
        'format_version': FORMAT_VERSION,
        'model_type': MODEL_TYPE,
        'alphabet': transducer.alphabet.to_dict(),
        'alphabet_size': transducer.input_size,
        'smoothing_strength': transducer.smoothing_strength,
        'min_iterations': transducer.min_iterations,
        'max_iterations': transducer.max_iterations,
        'convergence_threshold': transducer.convergence_threshold,
        'tolerance': transducer.tolerance,
        'check_invariants': transducer.check_invariants,
        'baseline': transducer.baseline,
    }
    tables = {name: np.asarray(value) for name, value in transducer.get_parameters().items()
              if isinstance(value, np.ndarray)}
    np.savez(path, metadata=np.array(json.dumps(metadata)), **tables)
    logger.info("Saved model to %s", path)
    return path


def load_model(path: Union[str, Path]) -> EditTransducer:
    """Rebuild a transducer saved by ``save_model``.

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    ValueError
        If the file was written with an unsupported format version or model type
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")

    with np.load(path, allow_pickle=False) as archive:
        metadata = json.loads(str(archive['metadata']))
        tables = {name: archive[name] for name in archive.files if name != 'metadata'}

    version = metadata.get('format_version')
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported model format version {version!r} (expected {FORMAT_VERSION})")
    if metadata.get('model_type') != MODEL_TYPE:
        raise ValueError(f"Unknown model type: {metadata.get('model_type')!r}")

    alphabet = CharacterAlphabet.from_dict(metadata['alphabet'])
    if len(alphabet) != metadata['alphabet_size']:
        raise ValueError(f"Alphabet has {len(alphabet)} symbols but the model was trained "
                         f"on {metadata['alphabet_size']}")

    transducer = EditTransducer(alphabet,
                                smoothing_strength=metadata['smoothing_strength'],
                                min_iterations=metadata['min_iterations'],
                                max_iterations=metadata['max_iterations'],
                                convergence_threshold=metadata['convergence_threshold'],
                                tolerance=metadata['tolerance'],
                                check_invariants=metadata['check_invariants'])
    transducer.baseline = metadata['baseline']

    params = dict(tables)
    params['edit_input_size'] = metadata['alphabet_size']
    params['edit_output_size'] = metadata['alphabet_size']
    params['edit_smoothing_strength'] = metadata['smoothing_strength']
    transducer.set_parameters(params)
    logger.info("Loaded model from %s (alphabet size %d)", path, len(alphabet))
    return transducer
