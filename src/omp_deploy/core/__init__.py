# omp_deploy/core/__init__.py
