# omp_deploy/utils/__init__.py
