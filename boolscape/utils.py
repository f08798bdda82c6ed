#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Small numerical helpers shared by the boolscape modules.

Conversions between binary vectors and integers follow the convention used
throughout the package: the first entry of a vector is the most significant
bit, so the binary string of a state reads in canonical node order.
"""

from __future__ import annotations
import math
import numbers
import random as _py_random

import numpy as np
from numpy.random import Generator as _NPGen, RandomState as _NPRandomState, SeedSequence, default_rng

from typing import Union


def _coerce_rng(rng : Union[int, _NPGen, _NPRandomState, _py_random.Random, None] = None) -> _NPGen:
    """
    Return a NumPy Generator given a variety of rng-like inputs.

    **Accepts:**

      - None                -> default_rng()
      - int (seed)          -> default_rng(seed)
      - np.random.Generator -> returned as-is
      - np.random.RandomState -> converted via SeedSequence
      - random.Random       -> converted via SeedSequence

    **Raises:**

        - TypeError: for unsupported inputs.
    """
    if rng is None:
        return default_rng()
    if isinstance(rng, _NPGen):
        return rng
    if isinstance(rng, (int, np.integer)):
        return default_rng(int(rng))
    if isinstance(rng, _NPRandomState):
        entropy = rng.randint(0, 2**32, size=4, dtype=np.uint32)
        return default_rng(SeedSequence(entropy))
    if isinstance(rng, _py_random.Random):
        entropy = [rng.getrandbits(32) for _ in range(4)]
        return default_rng(SeedSequence(entropy))
    raise TypeError(f"Unsupported rng type: {type(rng)!r}")


def is_number(element) -> bool:
    """
    Return True for finite real numbers (bools excluded).
    """
    if isinstance(element, bool) or not isinstance(element, numbers.Real):
        return False
    return math.isfinite(element)


def bin2dec(binary_vector : list) -> int:
    """
    Convert a binary vector to an integer.

    **Parameters:**

        - binary_vector (list[int]): List containing binary digits (0 or 1).

    **Returns:**

        - int: Integer value converted from the binary vector.
    """
    decimal = 0
    for bit in binary_vector:
        decimal = (decimal << 1) | int(bit)
    return decimal


def dec2bin(integer_value : int, num_bits : int) -> list:
    """
    Convert an integer to a binary vector of length num_bits.

    **Parameters:**

        - integer_value (int): Integer value to be converted.
        - num_bits (int): Number of bits in the binary representation.

    **Returns:**

        - list[int]: List containing binary digits (0 or 1).
    """
    if num_bits == 0:
        return []
    binary_string = bin(integer_value)[2:].zfill(num_bits)
    return [int(bit) for bit in binary_string]


left_side_of_truth_tables = {}

def get_left_side_of_truth_table(N : int) -> np.ndarray:
    """
    Return all 2^N binary vectors of length N as rows of a uint8 matrix.

    Row ``i`` is the binary representation of ``i`` (most significant bit
    first). Results are cached per N.
    """
    if N in left_side_of_truth_tables:
        left_side_of_truth_table = left_side_of_truth_tables[N]
    else:
        vals = np.arange(2**N, dtype=np.uint64)[:, None]
        masks = (np.uint64(1) << np.arange(N-1, -1, -1, dtype=np.uint64))[None]
        left_side_of_truth_table = ((vals & masks) != 0).astype(np.uint8)
        left_side_of_truth_tables[N] = left_side_of_truth_table
    return left_side_of_truth_table


def format_binary(integer_value : int, num_bits : int) -> str:
    """Binary string of a state, zero padded to num_bits."""
    if num_bits == 0:
        return ''
    return bin(integer_value)[2:].zfill(num_bits)
