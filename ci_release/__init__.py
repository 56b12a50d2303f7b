"""
Script: ci_release package
What: Holds the Python helpers that publish signed artifacts from CI to a staging repository.
Doing: Groups the CI environment checks, key import, piped command runner, and release driver in one importable package.
Why: Keeps release logic readable and testable instead of spreading it across CI provider configs.
Goal: Provide one place that decides whether a CI run releases, and does it.
"""
