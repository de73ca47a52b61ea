"""Lab-course viva portal: timed viva quizzes, experiments and submissions."""
