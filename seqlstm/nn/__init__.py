from .module import Module, Parameter
from .buffers import BufferArena
from .gates import GATES, gate_slice, split_gates
from .lstm import SequenceLSTM
from .layers import Linear

__all__ = ["Module", "Parameter", "BufferArena", "GATES", "gate_slice", "split_gates", "SequenceLSTM", "Linear"]
