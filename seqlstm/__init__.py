from .errors import DimensionMismatch, UnpreparedStateError
from .nn.lstm import SequenceLSTM
from .nn.layers import Linear
from .losses.mse import MSELoss
from .optim.adam import AdamW

__all__ = ["SequenceLSTM", "Linear", "MSELoss", "AdamW", "DimensionMismatch", "UnpreparedStateError"]
