# omp_deploy/cli/__init__.py
