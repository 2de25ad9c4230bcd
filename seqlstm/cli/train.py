from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Tuple
import numpy as np

from ..nn.lstm import SequenceLSTM
from ..nn.layers import Linear
from ..losses.mse import MSELoss
from ..optim.adam import AdamW, clip_grad_norm


def delayed_copy_batch(rng: np.random.Generator, batch_size: int, seq_len: int, dim: int) -> Tuple[np.ndarray, np.ndarray]:
    # target at step t is the input at step t-1, zeros at t=0
    x = rng.standard_normal((batch_size, seq_len, dim)).astype(np.float32)
    y = np.zeros_like(x)
    y[:, 1:, :] = x[:, :-1, :]
    return x, y


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Train a SequenceLSTM on a delayed-copy task")
    ap.add_argument("--input-dim", type=int, default=4)
    ap.add_argument("--hidden", type=int, default=32)
    ap.add_argument("--seq-len", type=int, default=16)
    ap.add_argument("--batch-size", type=int, default=32)
    ap.add_argument("--accum-steps", type=int, default=1)
    ap.add_argument("--batches", type=int, default=20, help="batches per epoch")
    ap.add_argument("--epochs", type=int, default=5)
    ap.add_argument("--lr", type=float, default=1e-2)
    ap.add_argument("--wd", type=float, default=0.0)
    ap.add_argument("--init-std", type=float, default=None)
    ap.add_argument("--max-grad-norm", type=float, default=5.0)
    ap.add_argument("--seed", type=int, default=123)
    ap.add_argument("--checkpoint", type=str, default="")
    ap.add_argument("--verbose", action="store_true")
    return ap


def train(args: argparse.Namespace) -> float:
    """Run the training loop described by parsed CLI ``args`` and return the last epoch loss."""
    if args.accum_steps <= 0 or args.batch_size % args.accum_steps != 0:
        raise SystemExit("--batch-size must be a positive multiple of --accum-steps")

    rng = np.random.default_rng(args.seed)
    D, H = args.input_dim, args.hidden
    lstm = SequenceLSTM(D, H, std=args.init_std, seed=args.seed + 31)
    head = Linear(H, D, seed=args.seed + 7)
    params = lstm.parameters() + head.parameters()
    opt = AdamW(params, lr=args.lr, weight_decay=args.wd)
    loss_fn = MSELoss()
    micro = args.batch_size // args.accum_steps
    scale = 1.0 / args.accum_steps

    global_step = 0
    epoch_loss = float("nan")
    for epoch in range(1, args.epochs + 1):
        tot = 0.0
        for _ in range(args.batches):
            opt.zero_grad()
            xb, yb = delayed_copy_batch(rng, args.batch_size, args.seq_len, D)
            batch_loss = 0.0
            for k in range(args.accum_steps):
                x = xb[k * micro:(k + 1) * micro]
                y = yb[k * micro:(k + 1) * micro]
                N, T = x.shape[0], x.shape[1]
                h0, c0 = lstm.init_state(N)
                hs = lstm(h0, c0, x)
                yhat = head(hs.reshape(N * T, H))
                batch_loss += scale * loss_fn(yhat, y.reshape(N * T, D))
                dh = head.backward(loss_fn.backward(), scale=scale)
                lstm.backward(h0, c0, x, dh.reshape(N, T, H), scale=scale)
            if args.max_grad_norm > 0.0:
                clip_grad_norm(params, args.max_grad_norm)
            opt.step()
            global_step += 1
            tot += batch_loss
        epoch_loss = tot / max(1, args.batches)
        print(f"epoch={epoch} step={global_step} train_loss={epoch_loss:.6f}")

    if args.checkpoint:
        state = lstm.state_dict()
        np.savez_compressed(
            args.checkpoint,
            weight=state["weight"],
            bias=state["bias"],
            head_W=head.W.data,
            head_b=head.b.data,
            input_dim=np.array([D], dtype=np.int64),
            hidden_dim=np.array([H], dtype=np.int64),
        )
    return epoch_loss


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    train(args)


if __name__ == "__main__":
    main()
