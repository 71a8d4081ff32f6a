# omp_deploy/config/__init__.py
