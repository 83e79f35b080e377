"""SO(3) rotation operations in JAX.

This module implements 3D rotations using rotation matrices, unit quaternions
and the roll-pitch-yaw convention used by URDF. All functions are pure and
operate on JAX arrays.
"""

import jax
import jax.numpy as jnp

Array = jax.Array


def from_rpy(rpy: Array) -> Array:
    """
    Convert roll-pitch-yaw angles to a rotation matrix.

    URDF uses fixed-axis rotations applied in X, Y, Z order, which is the
    matrix product R = Rz(yaw) @ Ry(pitch) @ Rx(roll).

    Args:
        rpy: (3,) array of [roll, pitch, yaw] angles in radians

    Returns:
        (3, 3) rotation matrix
    """
    roll, pitch, yaw = rpy[0], rpy[1], rpy[2]

    cr, sr = jnp.cos(roll), jnp.sin(roll)
    cp, sp = jnp.cos(pitch), jnp.sin(pitch)
    cy, sy = jnp.cos(yaw), jnp.sin(yaw)

    return jnp.array([
        [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
        [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
        [-sp, cp * sr, cp * cr],
    ])


def to_rpy(R: Array) -> Array:
    """
    Convert a rotation matrix to roll-pitch-yaw angles.

    At gimbal lock (pitch of +/- pi/2) roll is reported as zero and the whole
    rotation about Z is folded into yaw.

    Args:
        R: (3, 3) rotation matrix

    Returns:
        (3,) array of [roll, pitch, yaw] angles in radians
    """
    pitch = jnp.arcsin(jnp.clip(-R[2, 0], -1.0, 1.0))
    locked = jnp.abs(jnp.cos(pitch)) < 1e-9

    roll = jnp.where(locked, 0.0, jnp.arctan2(R[2, 1], R[2, 2]))
    yaw = jnp.where(
        locked,
        jnp.arctan2(-R[0, 1], R[1, 1]),
        jnp.arctan2(R[1, 0], R[0, 0]),
    )
    return jnp.stack([roll, pitch, yaw])


def from_quaternion(quaternions: Array) -> Array:
    """
    Convert quaternions to rotation matrices.

    Args:
        quaternions: (..., 4) array of quaternions in (w, x, y, z) format

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    quaternions = quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)

    w, x, y, z = jnp.moveaxis(quaternions, -1, 0)

    xx, yy, zz = x*x, y*y, z*z
    wx, wy, wz = w*x, w*y, w*z
    xy, xz, yz = x*y, x*z, y*z

    matrix = jnp.stack([
        jnp.stack([1 - 2*(yy + zz), 2*(xy - wz), 2*(xz + wy)], axis=-1),
        jnp.stack([2*(xy + wz), 1 - 2*(xx + zz), 2*(yz - wx)], axis=-1),
        jnp.stack([2*(xz - wy), 2*(yz + wx), 1 - 2*(xx + yy)], axis=-1)
    ], axis=-2)

    return matrix


def to_quaternion(matrix: Array) -> Array:
    """
    Convert rotation matrices to quaternions (w, x, y, z).
    Batch-safe implementation choosing the numerically best-conditioned branch.

    Args:
        matrix: (..., 3, 3) array of rotation matrices

    Returns:
        (..., 4) array of quaternions in (w, x, y, z) format, with w >= 0
    """
    m00 = matrix[..., 0, 0]
    m01 = matrix[..., 0, 1]
    m02 = matrix[..., 0, 2]
    m10 = matrix[..., 1, 0]
    m11 = matrix[..., 1, 1]
    m12 = matrix[..., 1, 2]
    m20 = matrix[..., 2, 0]
    m21 = matrix[..., 2, 1]
    m22 = matrix[..., 2, 2]

    trace = m00 + m11 + m22

    eps = jnp.finfo(matrix.dtype).eps

    # Four candidate quaternions, one per dominant component
    q0 = jnp.stack([
        trace + 1.0,
        m21 - m12,
        m02 - m20,
        m10 - m01
    ], axis=-1) * 0.5

    q1 = jnp.stack([
        m21 - m12,
        m00 - m11 - m22 + 1.0,
        m01 + m10,
        m02 + m20
    ], axis=-1) * 0.5

    q2 = jnp.stack([
        m02 - m20,
        m01 + m10,
        m11 - m00 - m22 + 1.0,
        m12 + m21
    ], axis=-1) * 0.5

    q3 = jnp.stack([
        m10 - m01,
        m02 + m20,
        m12 + m21,
        m22 - m00 - m11 + 1.0
    ], axis=-1) * 0.5

    s0 = 1.0 / jnp.sqrt(jnp.maximum(1.0 + trace, eps))
    s1 = 1.0 / jnp.sqrt(jnp.maximum(1.0 + m00 - m11 - m22, eps))
    s2 = 1.0 / jnp.sqrt(jnp.maximum(1.0 + m11 - m00 - m22, eps))
    s3 = 1.0 / jnp.sqrt(jnp.maximum(1.0 + m22 - m00 - m11, eps))

    q0 = q0 * s0[..., None]
    q1 = q1 * s1[..., None]
    q2 = q2 * s2[..., None]
    q3 = q3 * s3[..., None]

    mask0 = (trace > 0)
    mask1 = (~mask0) & (m00 > m11) & (m00 > m22)
    mask2 = (~mask0) & (~mask1) & (m11 > m22)
    mask3 = (~mask0) & (~mask1) & (~mask2)

    quaternion = (
        jnp.where(mask0[..., None], q0, 0) +
        jnp.where(mask1[..., None], q1, 0) +
        jnp.where(mask2[..., None], q2, 0) +
        jnp.where(mask3[..., None], q3, 0)
    )

    # Ensure non-negative scalar part and normalize
    quaternion = jnp.where(quaternion[..., 0:1] < 0, -quaternion, quaternion)
    quaternion = quaternion / jnp.linalg.norm(quaternion, axis=-1, keepdims=True)

    return quaternion
