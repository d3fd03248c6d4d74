from __future__ import annotations

import torch

from .model import MF


def positive_only_loss(
    model: MF,
    user_idx: torch.Tensor,
    pos_idx: torch.Tensor,
    neg_idx: torch.Tensor,
    lambda_: float = 0.0,
) -> torch.Tensor:
    """
    Squared loss for positive-only feedback over a minibatch:
      L(U,V) = mean_{(u,i) observed} (1 - U_u·V_i)^2
             + mean_{(u,j) sampled}  (0 - U_u·V_j)^2
             + (λ/2)(||U||_F^2 + ||V||_F^2)

    neg_idx has shape (batch, num_negatives) and may be empty along dim 1.
    """
    device = model.user_factors.device
    if user_idx.numel() == 0:
        return torch.tensor(0.0, dtype=torch.float64, device=device)

    pos_pred = model(user_idx, pos_idx)  # (batch,)
    data_term = torch.mean((1.0 - pos_pred) ** 2)

    if neg_idx.numel() > 0:
        neg_users = user_idx.unsqueeze(1).expand_as(neg_idx).reshape(-1)
        neg_pred = model(neg_users, neg_idx.reshape(-1))
        data_term = data_term + torch.mean(neg_pred ** 2)

    if lambda_ > 0.0:
        reg_term = 0.5 * lambda_ * (torch.sum(model.user_factors ** 2) + torch.sum(model.item_factors ** 2))
    else:
        reg_term = torch.tensor(0.0, dtype=torch.float64, device=device)

    return data_term + reg_term
