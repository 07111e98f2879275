from vite_workspace.cli import main

main()
