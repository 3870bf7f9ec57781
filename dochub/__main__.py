from dochub.cli import main

main()
