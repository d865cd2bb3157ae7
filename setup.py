from setuptools import setup

setup(
    name='gemini-task-master',
    version='0.1.0',
    py_modules=['task_master', 'ai_services', 'providers', 'response_parser', 'prompts', 'errors', 'config', 'ui_utils'],
    install_requires=[
        'google-generativeai',
        'google-api-core',
        'openai>=1.0',
        'python-dotenv',
        'colorama>=0.4.4',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'task-master = task_master:main',
        ],
    },
    author='Hesham Salama',
    author_email='hesham.salama@rub.de',
    description='A CLI task manager that uses Gemini to turn PRDs into development tasks, subtasks and complexity reports.',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
