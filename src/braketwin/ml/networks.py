"""PyTorch sequence networks with explicitly written gate equations.

Weights are drawn once from a seeded Box-Muller initializer and never trained;
the networks are evaluated under ``torch.no_grad()`` by the predictors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

import torch
from torch import nn
from torch.nn import functional as F

from braketwin.ml.initialization import box_muller_normal


OUTPUT_SIZE = 3


def _param(shape: tuple[int, ...], *, std: float, generator: torch.Generator) -> nn.Parameter:
    return nn.Parameter(box_muller_normal(shape, std=std, generator=generator), requires_grad=False)


def _check_sequence(x: torch.Tensor, input_size: int) -> None:
    if x.ndim != 2:
        raise ValueError("Input tensor must have shape [timesteps, features]")
    if int(x.shape[0]) == 0:
        raise ValueError("Input tensor must contain at least one timestep")
    if int(x.shape[1]) != input_size:
        raise ValueError(f"Input tensor must have {input_size} features")


class GatedMemoryCell(nn.Module):
    """Input/forget/cell/output gated memory cell operating on [input, hidden]."""

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        *,
        generator: torch.Generator,
        activation_clip: float = 500.0,
    ) -> None:
        super().__init__()
        if input_size <= 0:
            raise ValueError("input_size must be > 0")
        if hidden_size <= 0:
            raise ValueError("hidden_size must be > 0")
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.activation_clip = activation_clip
        xavier_std = (2.0 / (input_size + hidden_size)) ** 0.5
        # gate order: input, forget, cell, output
        self.weight = _param(
            (4, hidden_size, input_size + hidden_size), std=xavier_std, generator=generator
        )
        self.bias = _param((4, hidden_size), std=0.1, generator=generator)

    def forward(
        self,
        x: torch.Tensor,
        hidden: torch.Tensor,
        cell: torch.Tensor,
    ) -> tuple[torch.Tensor, torch.Tensor]:
        combined = torch.cat((x, hidden))
        pre = torch.clamp(
            torch.einsum("ghk,k->gh", self.weight, combined) + self.bias,
            -self.activation_clip,
            self.activation_clip,
        )
        input_gate = torch.sigmoid(pre[0])
        forget_gate = torch.sigmoid(pre[1])
        cell_gate = torch.tanh(pre[2])
        output_gate = torch.sigmoid(pre[3])

        new_cell = forget_gate * cell + input_gate * cell_gate
        clipped_cell = torch.clamp(new_cell, -self.activation_clip, self.activation_clip)
        new_hidden = output_gate * torch.tanh(clipped_cell)
        return new_hidden, new_cell


@dataclass(frozen=True, slots=True)
class AttentionTrace:
    """Per-call internals of the bidirectional attention network."""

    output: torch.Tensor
    forward_states: torch.Tensor
    backward_states: torch.Tensor
    attention_weights: torch.Tensor
    context: torch.Tensor

    @property
    def peak_attention(self) -> float:
        return float(torch.max(self.attention_weights).item())


class BidirectionalAttentionLSTM(nn.Module):
    """Stacked bidirectional gated-memory network with dot-product attention."""

    def __init__(
        self,
        *,
        input_size: int,
        hidden_size: int,
        num_layers: int,
        bidirectional: bool,
        use_attention: bool,
        init_std: float,
        generator: torch.Generator,
    ) -> None:
        super().__init__()
        if num_layers <= 0:
            raise ValueError("num_layers must be > 0")
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.bidirectional = bidirectional
        self.use_attention = use_attention

        self.forward_layers = nn.ModuleList(
            GatedMemoryCell(input_size if idx == 0 else hidden_size, hidden_size, generator=generator)
            for idx in range(num_layers)
        )
        self.backward_layers = nn.ModuleList(
            GatedMemoryCell(input_size if idx == 0 else hidden_size, hidden_size, generator=generator)
            for idx in range(num_layers if bidirectional else 0)
        )
        head_input = hidden_size if use_attention or not bidirectional else 2 * hidden_size
        self.head_weight = _param((OUTPUT_SIZE, head_input), std=init_std, generator=generator)
        self.head_bias = _param((OUTPUT_SIZE,), std=init_std, generator=generator)

    def forward(self, x: torch.Tensor) -> AttentionTrace:
        """Run forward and backward passes over shape [timesteps, features]."""
        _check_sequence(x, self.input_size)
        forward_states = self._run_direction(self.forward_layers, x)
        if self.bidirectional:
            reversed_states = self._run_direction(self.backward_layers, torch.flip(x, dims=(0,)))
            backward_states = torch.flip(reversed_states, dims=(0,))
        else:
            backward_states = torch.zeros_like(forward_states)

        final_forward = forward_states[-1]
        if self.use_attention:
            weights, context = self._attend(forward_states, final_forward)
            head_input = context
        else:
            steps = int(forward_states.shape[0])
            weights = torch.full((steps,), 1.0 / steps, dtype=forward_states.dtype)
            context = final_forward
            if self.bidirectional:
                head_input = torch.cat((final_forward, backward_states[0]))
            else:
                head_input = final_forward

        output = self.head_weight @ head_input + self.head_bias
        return AttentionTrace(
            output=output,
            forward_states=forward_states,
            backward_states=backward_states,
            attention_weights=weights,
            context=context,
        )

    def _run_direction(self, layers: nn.ModuleList, x: torch.Tensor) -> torch.Tensor:
        layer_input = x
        for layer in layers:
            cell_module = cast(GatedMemoryCell, layer)
            hidden = torch.zeros(self.hidden_size, dtype=x.dtype)
            cell = torch.zeros(self.hidden_size, dtype=x.dtype)
            states: list[torch.Tensor] = []
            for step in range(int(layer_input.shape[0])):
                hidden, cell = cell_module(layer_input[step], hidden, cell)
                states.append(hidden)
            layer_input = torch.stack(states)
        return layer_input

    @staticmethod
    def _attend(states: torch.Tensor, query: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
        scores = states @ query
        weights = torch.softmax(scores, dim=0)
        context = weights @ states
        return weights, context


class GatedRecurrentNetwork(nn.Module):
    """Single-direction reset/update/candidate gated recurrent network."""

    def __init__(
        self,
        *,
        input_size: int,
        hidden_size: int,
        init_std: float,
        generator: torch.Generator,
        activation_clip: float = 50.0,
    ) -> None:
        super().__init__()
        if input_size <= 0:
            raise ValueError("input_size must be > 0")
        if hidden_size <= 0:
            raise ValueError("hidden_size must be > 0")
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.activation_clip = activation_clip
        concat = input_size + hidden_size
        self.reset_weight = _param((hidden_size, concat), std=init_std, generator=generator)
        self.update_weight = _param((hidden_size, concat), std=init_std, generator=generator)
        self.candidate_weight = _param((hidden_size, concat), std=init_std, generator=generator)
        self.reset_bias = _param((hidden_size,), std=init_std, generator=generator)
        self.update_bias = _param((hidden_size,), std=init_std, generator=generator)
        self.candidate_bias = _param((hidden_size,), std=init_std, generator=generator)
        self.head_weight = _param((OUTPUT_SIZE, hidden_size), std=init_std, generator=generator)
        self.head_bias = _param((OUTPUT_SIZE,), std=init_std, generator=generator)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Return raw head outputs for shape [timesteps, features]."""
        _check_sequence(x, self.input_size)
        clip = self.activation_clip
        hidden = torch.zeros(self.hidden_size, dtype=x.dtype)
        for step in range(int(x.shape[0])):
            xt = x[step]
            concat = torch.cat((xt, hidden))
            reset = torch.sigmoid(torch.clamp(self.reset_weight @ concat + self.reset_bias, -clip, clip))
            update = torch.sigmoid(
                torch.clamp(self.update_weight @ concat + self.update_bias, -clip, clip)
            )
            concat_reset = torch.cat((xt, reset * hidden))
            candidate = torch.tanh(
                torch.clamp(self.candidate_weight @ concat_reset + self.candidate_bias, -clip, clip)
            )
            hidden = (1.0 - update) * candidate + update * hidden
        return self.head_weight @ hidden + self.head_bias


class DilatedCausalConvNetwork(nn.Module):
    """Stack of causal dilated depthwise convolutions with residual input injection."""

    def __init__(
        self,
        *,
        channels: int,
        kernel_size: int,
        dilations: tuple[int, ...],
        residual_scale: float,
        init_std: float,
        generator: torch.Generator,
    ) -> None:
        super().__init__()
        if channels <= 0:
            raise ValueError("channels must be > 0")
        if kernel_size <= 0:
            raise ValueError("kernel_size must be > 0")
        if not dilations or any(value <= 0 for value in dilations):
            raise ValueError("dilations must be non-empty and > 0")
        self.channels = channels
        self.kernel_size = kernel_size
        self.dilations = dilations
        self.residual_scale = residual_scale
        # kernels[layer, channel, tap]; tap i reads x[t - i * dilation]
        self.kernels = _param(
            (len(dilations), channels, kernel_size), std=init_std, generator=generator
        )
        self.head_weight = _param((OUTPUT_SIZE, channels), std=init_std, generator=generator)
        self.head_bias = nn.Parameter(torch.zeros(OUTPUT_SIZE, dtype=torch.float64), requires_grad=False)

    def forward(self, signal: torch.Tensor) -> torch.Tensor:
        """Return raw head outputs for a single-channel signal of shape [timesteps]."""
        if signal.ndim != 1:
            raise ValueError("Input signal must have shape [timesteps]")
        if int(signal.shape[0]) == 0:
            raise ValueError("Input signal must contain at least one timestep")

        features = signal.expand(self.channels, -1).unsqueeze(0)
        residual = self.residual_scale * signal
        for layer_idx, dilation in enumerate(self.dilations):
            # conv1d is cross-correlation, so taps are flipped to read backwards in time
            weight = torch.flip(self.kernels[layer_idx], dims=(-1,)).unsqueeze(1)
            padded = F.pad(features, ((self.kernel_size - 1) * dilation, 0))
            convolved = F.relu(
                F.conv1d(padded, weight, dilation=dilation, groups=self.channels)
            )
            features = F.relu(convolved + residual)

        pooled = torch.mean(features[0], dim=1)
        return self.head_weight @ pooled + self.head_bias
