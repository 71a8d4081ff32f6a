# omp_deploy/api/__init__.py
