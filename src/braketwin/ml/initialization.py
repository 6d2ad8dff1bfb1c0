"""Seeded normal initializers for the sequence predictor weight tensors."""

from __future__ import annotations

import math

import torch


def make_generator(seed: int | None) -> torch.Generator:
    """Return a CPU generator, seeded deterministically when ``seed`` is given."""
    generator = torch.Generator()
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(int(seed))
    return generator


def box_muller_normal(
    shape: tuple[int, ...],
    *,
    std: float,
    generator: torch.Generator,
) -> torch.Tensor:
    """Draw N(0, std^2) samples via the Box-Muller transform."""
    if std < 0.0:
        raise ValueError("std must be >= 0")
    u1 = torch.rand(shape, generator=generator, dtype=torch.float64)
    u2 = torch.rand(shape, generator=generator, dtype=torch.float64)
    # log(0) guard
    u1 = torch.clamp(u1, min=torch.finfo(torch.float64).tiny)
    z0 = torch.sqrt(-2.0 * torch.log(u1)) * torch.cos(2.0 * math.pi * u2)
    return z0 * std
