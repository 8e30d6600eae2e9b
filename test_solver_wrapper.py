import unittest

from solver_wrapper import LinearProgram, LPStatus, ConstraintType, SolverFactory


class TestLinearProgram(unittest.TestCase):

    def test_minimises_objective(self):
        lp = LinearProgram(2)
        lp.set_objective([1, 1])
        lp.add_constraint([1, 2], ConstraintType.GE, 4)
        self.assertEqual(lp.solve(), LPStatus.OPTIMAL)
        self.assertEqual(sum(lp.get_variable_values()), 2)

    def test_infeasible(self):
        lp = LinearProgram(1)
        lp.set_objective([1])
        lp.add_constraint([2], ConstraintType.EQ, 3)
        self.assertEqual(lp.solve(), LPStatus.INFEASIBLE)
        with self.assertRaises(RuntimeError):
            lp.get_variable_values()

    def test_rows_can_be_changed_between_solves(self):
        lp = LinearProgram(1)
        lp.set_objective([1])
        row = lp.add_constraint([1], ConstraintType.EQ, 2)
        self.assertEqual(lp.solve(), LPStatus.OPTIMAL)
        self.assertEqual(lp.get_variable_values(), [2])

        lp.set_constraint_value(row, 5)
        lp.set_constraint_type(row, ConstraintType.GE)
        self.assertEqual(lp.solve(), LPStatus.OPTIMAL)
        self.assertEqual(lp.get_variable_values(), [5])

    def test_constant_row_is_decided_without_the_solver(self):
        lp = LinearProgram(1)
        lp.add_constraint([0], ConstraintType.EQ, 1)
        self.assertEqual(lp.solve(), LPStatus.INFEASIBLE)

    def test_rejects_wrong_row_length(self):
        lp = LinearProgram(2)
        with self.assertRaises(ValueError):
            lp.add_constraint([1], ConstraintType.EQ, 0)

    def test_unknown_solver_type(self):
        with self.assertRaises(ValueError):
            SolverFactory.create_solver("gurobi")


if __name__ == "__main__":
    unittest.main()
