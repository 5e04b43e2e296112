"""Tests for SE3 and the pose chain."""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from monovo.frontend.pose import SE3, PoseChain, compose_projection


def random_motion(seed: int) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    R = Rotation.from_rotvec(rng.normal(size=3)).as_matrix()
    t = rng.normal(size=3)
    return R, t


def homogeneous(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    T = np.eye(4)
    T[:3, :3] = R
    T[:3, 3] = t
    return T


class TestSE3:
    """Test suite for the SE3 rigid transform."""

    def test_invalid_shapes(self):
        with pytest.raises(ValueError, match="Rotation must be 3x3"):
            SE3(rotation=np.eye(2), translation=np.zeros(3))
        with pytest.raises(ValueError, match="Translation must be"):
            SE3(rotation=np.eye(3), translation=np.zeros(2))

    def test_from_Rt_accepts_column_translation(self):
        R, t = random_motion(1)
        T = SE3.from_Rt(R, t.reshape(3, 1))
        np.testing.assert_allclose(T.translation, t)

    def test_to_matrix_bottom_row(self):
        T = SE3.from_Rt(*random_motion(7)).to_matrix()
        np.testing.assert_array_equal(T[3], [0, 0, 0, 1])

    def test_from_matrix_roundtrip_3x4(self):
        R, t = random_motion(2)
        T = SE3.from_Rt(R, t)
        np.testing.assert_allclose(SE3.from_matrix(T.to_projection()).to_matrix(), T.to_matrix(), atol=1e-12)

    def test_from_matrix_rejects_bad_shape(self):
        with pytest.raises(ValueError, match="4x4 or 3x4"):
            SE3.from_matrix(np.eye(3))

    def test_compose_matches_matrix_product(self):
        A = SE3.from_Rt(*random_motion(4))
        B = SE3.from_Rt(*random_motion(5))
        np.testing.assert_allclose((A @ B).to_matrix(), A.to_matrix() @ B.to_matrix(), atol=1e-12)


class TestComposeProjection:
    """Test suite for projection chaining."""

    def test_identity_start(self):
        R, t = random_motion(8)
        P = compose_projection(np.eye(3, 4), R, t)
        assert P.shape == (3, 4)
        np.testing.assert_allclose(P[:, :3], R)
        np.testing.assert_allclose(P[:, 3], t)

    def test_rejects_bad_shape(self):
        R, t = random_motion(9)
        with pytest.raises(ValueError, match="Projection must be"):
            compose_projection(np.eye(3), R, t)

    def test_associativity(self):
        """(A then B) then C equals A then (B then C)."""
        A = random_motion(10)
        B = random_motion(11)
        C = random_motion(12)

        left = compose_projection(compose_projection(compose_projection(np.eye(3, 4), *A), *B), *C)

        BC = homogeneous(*B) @ homogeneous(*C)
        right = compose_projection(compose_projection(np.eye(3, 4), *A), BC[:3, :3], BC[:3, 3])

        np.testing.assert_allclose(left, right, atol=1e-12)

    def test_order_matters(self):
        A = random_motion(13)
        B = random_motion(14)
        AB = compose_projection(compose_projection(np.eye(3, 4), *A), *B)
        BA = compose_projection(compose_projection(np.eye(3, 4), *B), *A)
        assert not np.allclose(AB, BA)


class TestPoseChain:
    """Test suite for PoseChain."""

    def test_starts_at_identity(self):
        chain = PoseChain()
        np.testing.assert_array_equal(chain.projection, np.eye(3, 4))
        assert chain.num_steps == 0
        np.testing.assert_array_equal(chain.position, np.zeros(3))

    def test_advance_with_tuple_and_se3(self):
        motions = [random_motion(s) for s in range(20, 25)]

        chain_tuple = PoseChain()
        chain_se3 = PoseChain()
        for R, t in motions:
            chain_tuple.advance((R, t))
            chain_se3.advance(SE3.from_Rt(R, t))

        np.testing.assert_allclose(chain_tuple.projection, chain_se3.projection)

    def test_matches_full_product(self):
        motions = [random_motion(s) for s in range(30, 36)]
        chain = PoseChain()
        product = np.eye(4)
        for R, t in motions:
            chain.advance((R, t))
            product = product @ homogeneous(R, t)

        np.testing.assert_allclose(chain.projection, product[:3, :], atol=1e-10)
        assert chain.num_steps == len(motions)

    def test_pure_translations_accumulate(self):
        chain = PoseChain()
        for _ in range(4):
            chain.advance((np.eye(3), np.array([0.5, 0.0, 1.0])))

        np.testing.assert_allclose(chain.position, [2.0, 0.0, 4.0])

    def test_history_is_unbroken(self):
        chain = PoseChain()
        motions = [random_motion(s) for s in range(40, 43)]
        for R, t in motions:
            chain.advance((R, t))

        history = chain.history
        assert len(history) == 4
        np.testing.assert_array_equal(history[0], np.eye(3, 4))
        for P_prev, P_next, (R, t) in zip(history, history[1:], motions):
            np.testing.assert_allclose(P_next, compose_projection(P_prev, R, t))

    def test_projection_is_a_copy(self):
        chain = PoseChain()
        P = chain.projection
        P[0, 3] = 99.0
        assert chain.projection[0, 3] == 0.0

    def test_reset(self):
        chain = PoseChain()
        chain.advance(random_motion(50))
        chain.reset()
        assert chain.num_steps == 0
        np.testing.assert_array_equal(chain.projection, np.eye(3, 4))

    def test_invalid_initial(self):
        with pytest.raises(ValueError, match="3x4"):
            PoseChain(initial=np.eye(4))
