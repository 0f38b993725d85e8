import threading
import unittest

import numpy as np

from symeig import (
    NO_CONVERGENCE,
    AsymmetricMatrixError,
    EigenvectorMatrixType,
    NotConvergedError,
    SolverState,
    SolveStatus,
    SortOrder,
    SymmetricEigensolver,
    eigh,
)


def make_random_symmetric(n: int, seed: int, dtype=np.float64) -> np.ndarray:
    rng = np.random.default_rng(seed)
    A = rng.uniform(0.0, 1.0, size=(n, n))
    A = np.triu(A) + np.triu(A, 1).T
    return A.astype(dtype)


def count_cycles(permutation: np.ndarray) -> int:
    seen = np.zeros(permutation.shape[0], dtype=bool)
    cycles = 0
    for i in range(permutation.shape[0]):
        if seen[i]:
            continue
        cycles += 1
        j = i
        while not seen[j]:
            seen[j] = True
            j = int(permutation[j])
    return cycles


class TestScenarios(unittest.TestCase):
    def test_two_by_two(self):
        solver = SymmetricEigensolver(2, 8)
        result = solver.solve(np.array([2.0, 1.0, 1.0, 2.0]), SortOrder.ASCENDING)

        self.assertTrue(result.converged)
        self.assertEqual(result.iterations, 1)
        self.assertEqual(result.as_legacy(), 1)
        np.testing.assert_allclose(solver.get_eigenvalues(), [1.0, 3.0], atol=1e-15)

        Q = solver.get_eigenvectors()
        s = 1.0 / np.sqrt(2.0)
        np.testing.assert_allclose(np.abs(Q), np.full((2, 2), s), atol=1e-15)
        # Column 0 belongs to eigenvalue 1: (1, -1)/sqrt(2) up to sign.
        self.assertAlmostEqual(Q[0, 0] + Q[1, 0], 0.0, places=15)
        self.assertAlmostEqual(Q[0, 1] - Q[1, 1], 0.0, places=15)

    def test_identity_is_already_diagonal(self):
        for order in (SortOrder.NONE, SortOrder.ASCENDING):
            solver = SymmetricEigensolver(4, 10)
            result = solver.solve(np.eye(4), order)

            self.assertEqual(result.status, SolveStatus.CONVERGED)
            self.assertEqual(result.iterations, 0)
            self.assertEqual(solver.rotation_count, 0)
            np.testing.assert_array_equal(solver.get_eigenvalues(), np.ones(4))
            np.testing.assert_array_equal(solver.get_eigenvectors(), np.eye(4))
            self.assertEqual(solver.eigenvector_matrix_type, EigenvectorMatrixType.ROTATION)

    def test_iteration_budget_exhausted(self):
        A = make_random_symmetric(6, seed=1)
        solver = SymmetricEigensolver(6, 1)
        with self.assertLogs("symeig.solver", level="WARNING"):
            result = solver.solve(A, SortOrder.ASCENDING)

        self.assertEqual(result.status, SolveStatus.NOT_CONVERGED)
        self.assertFalse(result.converged)
        self.assertEqual(result.as_legacy(), NO_CONVERGENCE)
        self.assertEqual(solver.state, SolverState.NOT_CONVERGED)

        # Partial results stay queryable, in raw order.
        values = solver.get_eigenvalues()
        self.assertTrue(np.all(np.isfinite(values)))
        self.assertEqual(values[0], solver.get_eigenvalue(0))
        Q = solver.get_eigenvectors()
        np.testing.assert_allclose(Q.T @ Q, np.eye(6), atol=1e-13)


class TestInert(unittest.TestCase):
    def test_invalid_configurations(self):
        for order, budget in [(1, 10), (0, 10), (5, 0), (-3, -1)]:
            with self.assertLogs("symeig.solver", level="WARNING"):
                solver = SymmetricEigensolver(order, budget)

            self.assertEqual(solver.order, 0)
            self.assertEqual(solver.state, SolverState.INERT)
            result = solver.solve(np.zeros(4))
            self.assertEqual(result.status, SolveStatus.INERT)
            self.assertEqual(result.iterations, 0)
            self.assertEqual(result.as_legacy(), 0)
            self.assertIsNone(solver.get_eigenvalues())
            self.assertEqual(solver.get_eigenvalue(0), np.finfo(np.float64).max)
            self.assertIsNone(solver.get_eigenvectors())
            self.assertIsNone(solver.get_eigenvector(0))
            self.assertEqual(solver.eigenvector_matrix_type, EigenvectorMatrixType.NOT_COMPUTED)
            self.assertEqual(solver.rotation_count, 0)


class TestDecomposition(unittest.TestCase):
    def test_orthogonality_and_reconstruction(self):
        eps = np.finfo(np.float64).eps
        for n in (3, 5, 8, 13, 24):
            A = make_random_symmetric(n, seed=n)
            solver = SymmetricEigensolver(n, 30 * n)
            result = solver.solve(A, SortOrder.NONE)
            self.assertTrue(result.converged)
            self.assertLessEqual(solver.rotation_count, solver.config.rotation_capacity)

            D = np.diag(solver.get_eigenvalues())
            Q = solver.get_eigenvectors()
            ortho = np.linalg.norm(Q.T @ Q - np.eye(n))
            rel = np.linalg.norm(Q.T @ A @ Q - D) / np.linalg.norm(A)
            self.assertLess(ortho, 100 * n * eps)
            self.assertLess(rel, 100 * n * eps)

            np.testing.assert_allclose(np.sort(np.diag(D)), np.linalg.eigvalsh(A), atol=1e-12)

    def test_sorted_orders(self):
        n = 9
        A = make_random_symmetric(n, seed=77)
        solver = SymmetricEigensolver(n, 30 * n)

        solver.solve(A, SortOrder.ASCENDING)
        asc = solver.get_eigenvalues()
        self.assertTrue(np.all(np.diff(asc) >= 0))
        Q = solver.get_eigenvectors()
        np.testing.assert_allclose(A @ Q, Q * asc, atol=1e-12)
        for c in range(n):
            self.assertEqual(solver.get_eigenvalue(c), asc[c])

        solver.solve(A, SortOrder.DESCENDING)
        desc = solver.get_eigenvalues()
        self.assertTrue(np.all(np.diff(desc) <= 0))
        Q = solver.get_eigenvectors()
        np.testing.assert_allclose(A @ Q, Q * desc, atol=1e-12)
        np.testing.assert_allclose(desc, asc[::-1], atol=1e-13)

    def test_plain_int_sort_request(self):
        A = make_random_symmetric(5, seed=8)
        solver = SymmetricEigensolver(5, 150)
        solver.solve(A, -7)
        self.assertTrue(np.all(np.diff(solver.get_eigenvalues()) <= 0))

    def test_single_vector_matches_full_matrix(self):
        n = 8
        A = make_random_symmetric(n, seed=3)
        solver = SymmetricEigensolver(n, 30 * n)
        for order in (SortOrder.DESCENDING, SortOrder.NONE, SortOrder.ASCENDING):
            solver.solve(A, order)
            Q = solver.get_eigenvectors()
            for c in range(n):
                np.testing.assert_allclose(solver.get_eigenvector(c), Q[:, c], atol=1e-13)

    def test_queries_are_idempotent(self):
        n = 7
        A = make_random_symmetric(n, seed=21)
        solver = SymmetricEigensolver(n, 30 * n)
        solver.solve(A, SortOrder.ASCENDING)

        np.testing.assert_array_equal(solver.get_eigenvalues(), solver.get_eigenvalues())
        Q1 = solver.get_eigenvectors()
        Q2 = solver.get_eigenvectors()
        np.testing.assert_array_equal(Q1, Q2)
        np.testing.assert_array_equal(solver.get_eigenvector(2), solver.get_eigenvector(2))

    def test_matrix_type_parity(self):
        for n in (3, 4, 6, 9):
            A = make_random_symmetric(n, seed=100 + n)
            solver = SymmetricEigensolver(n, 30 * n)

            solver.solve(A, SortOrder.NONE)
            raw = solver.get_eigenvalues()
            perm = np.argsort(raw, kind="stable")
            transpositions = n - count_cycles(perm)

            solver.solve(A, SortOrder.ASCENDING)
            self.assertEqual(solver.eigenvector_matrix_type, EigenvectorMatrixType.NOT_COMPUTED)
            Q = solver.get_eigenvectors()

            expected = (
                EigenvectorMatrixType.ROTATION
                if (n - 2 + transpositions) % 2 == 0
                else EigenvectorMatrixType.REFLECTION
            )
            self.assertEqual(solver.eigenvector_matrix_type, expected)
            det = np.linalg.det(Q)
            self.assertEqual(det > 0, expected == EigenvectorMatrixType.ROTATION)

    def test_parity_with_skipped_reflections(self):
        B = make_random_symmetric(4, seed=7)
        partial = np.zeros((5, 5))
        partial[0, 0] = 1.5
        partial[1:, 1:] = B
        # Odd orders where at least one column needs no reflection.
        for A in (np.diag([1.0, 2.0, 3.0]), partial):
            n = A.shape[0]
            solver = SymmetricEigensolver(n, 30 * n)
            self.assertTrue(solver.solve(A, SortOrder.NONE).converged)
            Q = solver.get_eigenvectors()

            self.assertEqual(solver.eigenvector_matrix_type, EigenvectorMatrixType.ROTATION)
            self.assertGreater(np.linalg.det(Q), 0.0)
            rel = np.linalg.norm(Q.T @ A @ Q - np.diag(solver.get_eigenvalues())) / np.linalg.norm(A)
            self.assertLess(rel, 100 * n * np.finfo(np.float64).eps)
            for c in range(n):
                np.testing.assert_allclose(solver.get_eigenvector(c), Q[:, c], atol=1e-13)

            solver.solve(A, SortOrder.ASCENDING)
            Q = solver.get_eigenvectors()
            self.assertEqual(
                np.linalg.det(Q) > 0,
                solver.eigenvector_matrix_type == EigenvectorMatrixType.ROTATION,
            )
            for c in range(n):
                np.testing.assert_allclose(solver.get_eigenvector(c), Q[:, c], atol=1e-13)

    def test_solver_is_reusable(self):
        solver = SymmetricEigensolver(6, 180)
        for seed in range(4):
            A = make_random_symmetric(6, seed=seed)
            self.assertTrue(solver.solve(A, SortOrder.ASCENDING).converged)
            np.testing.assert_allclose(solver.get_eigenvalues(), np.linalg.eigvalsh(A), atol=1e-12)

    def test_float32(self):
        n = 10
        A = make_random_symmetric(n, seed=5, dtype=np.float32)
        solver = SymmetricEigensolver(n, 30 * n, dtype=np.float32)
        self.assertTrue(solver.solve(A, SortOrder.ASCENDING).converged)

        values = solver.get_eigenvalues()
        Q = solver.get_eigenvectors()
        self.assertEqual(values.dtype, np.float32)
        self.assertEqual(Q.dtype, np.float32)
        A64 = A.astype(np.float64)
        Q64 = Q.astype(np.float64)
        rel = np.linalg.norm(Q64.T @ A64 @ Q64 - np.diag(values.astype(np.float64))) / np.linalg.norm(A64)
        self.assertLess(rel, 1e-5)
        np.testing.assert_allclose(values, np.linalg.eigvalsh(A64), atol=1e-4)


class TestBuffers(unittest.TestCase):
    def setUp(self):
        self.n = 5
        self.A = make_random_symmetric(self.n, seed=12)
        self.solver = SymmetricEigensolver(self.n, 150)
        self.solver.solve(self.A.ravel(), SortOrder.ASCENDING)

    def test_flat_output_buffers(self):
        n = self.n
        flat = np.zeros(n * n)
        Q = self.solver.get_eigenvectors(flat)
        self.assertTrue(np.shares_memory(Q, flat))
        np.testing.assert_array_equal(flat.reshape(n, n), Q)

        square = np.zeros((n, n))
        self.assertIs(self.solver.get_eigenvectors(square), square)

        values = np.zeros(n)
        out = self.solver.get_eigenvalues(values)
        self.assertIs(out, values)

        vec = np.zeros(n)
        col = self.solver.get_eigenvector(3, vec)
        self.assertIs(col, vec)
        np.testing.assert_allclose(vec, Q[:, 3], atol=1e-13)

    def test_bad_buffers(self):
        with self.assertRaises(ValueError):
            self.solver.get_eigenvalues(np.zeros(self.n + 1))
        with self.assertRaises(ValueError):
            self.solver.get_eigenvectors(np.zeros((self.n, self.n), dtype=np.float32))
        with self.assertRaises(ValueError):
            self.solver.solve(np.zeros(self.n * self.n + 1))

    def test_out_of_range_eigenvector(self):
        self.assertIsNone(self.solver.get_eigenvector(-1))
        self.assertIsNone(self.solver.get_eigenvector(self.n))


class TestSymmetryCheck(unittest.TestCase):
    def test_asymmetric_input_rejected_when_enabled(self):
        A = make_random_symmetric(4, seed=0)
        A[0, 3] += 1.0
        solver = SymmetricEigensolver(4, 120, check_symmetry=True)
        with self.assertRaises(AsymmetricMatrixError):
            solver.solve(A)
        self.assertEqual(solver.state, SolverState.UNSOLVED)

        solver.solve(make_random_symmetric(4, seed=0))
        self.assertEqual(solver.state, SolverState.CONVERGED)

    def test_rejected_solve_keeps_previous_results(self):
        A = make_random_symmetric(4, seed=2)
        solver = SymmetricEigensolver(4, 120, check_symmetry=True)
        solver.solve(A, SortOrder.ASCENDING)
        solver.get_eigenvectors()
        matrix_type = solver.eigenvector_matrix_type
        values = solver.get_eigenvalues()
        self.assertNotEqual(matrix_type, EigenvectorMatrixType.NOT_COMPUTED)

        bad = A.copy()
        bad[1, 2] += 1.0
        with self.assertRaises(AsymmetricMatrixError):
            solver.solve(bad, SortOrder.DESCENDING)
        with self.assertRaises(ValueError):
            solver.solve(np.zeros(15))

        self.assertEqual(solver.state, SolverState.CONVERGED)
        self.assertEqual(solver.eigenvector_matrix_type, matrix_type)
        np.testing.assert_array_equal(solver.get_eigenvalues(), values)

    def test_unchecked_by_default(self):
        A = make_random_symmetric(4, seed=0)
        A[0, 3] += 1.0
        solver = SymmetricEigensolver(4, 120)
        self.assertIsNotNone(solver.solve(A))


class TestConcurrency(unittest.TestCase):
    def test_shared_instance_is_serialized(self):
        n = 6
        solver = SymmetricEigensolver(n, 30 * n)
        matrices = [make_random_symmetric(n, seed=s) for s in range(8)]
        errors = []

        def worker(A):
            with solver.lock:
                solver.solve(A, SortOrder.ASCENDING)
                values = solver.get_eigenvalues()
            if not np.allclose(values, np.linalg.eigvalsh(A), atol=1e-12):
                errors.append(values)

        threads = [threading.Thread(target=worker, args=(A,)) for A in matrices]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(errors, [])


class TestEigh(unittest.TestCase):
    def test_matches_lapack(self):
        A = make_random_symmetric(12, seed=4)
        w, Q = eigh(A)
        np.testing.assert_allclose(w, np.linalg.eigvalsh(A), atol=1e-12)
        np.testing.assert_allclose(A @ Q, Q * w, atol=1e-12)

    def test_trivial_orders(self):
        w, Q = eigh(np.array([[3.0]]))
        np.testing.assert_array_equal(w, [3.0])
        np.testing.assert_array_equal(Q, [[1.0]])
        w, Q = eigh(np.zeros((0, 0)))
        self.assertEqual(w.shape, (0,))
        self.assertEqual(Q.shape, (0, 0))

    def test_not_converged(self):
        with self.assertRaises(NotConvergedError) as ctx:
            eigh(make_random_symmetric(5, seed=2), max_iterations=1)
        self.assertEqual(ctx.exception.result.status, SolveStatus.NOT_CONVERGED)


if __name__ == "__main__":
    unittest.main()
