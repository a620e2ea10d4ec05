"""Game logic: immutable board state, move application, and win detection."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

BOARD_SIZE = 15
WIN_LENGTH = 5

BLACK = "black"
WHITE = "white"

# Four directions: horizontal, vertical, diagonal ↘, diagonal ↗
DIRECTIONS = [
    (0, 1),
    (1, 0),
    (1, 1),
    (1, -1),
]

Cell = str | None
Board = tuple[tuple[Cell, ...], ...]


def opponent(color: str) -> str:
    return WHITE if color == BLACK else BLACK


def empty_board(size: int = BOARD_SIZE) -> Board:
    return tuple((None,) * size for _ in range(size))


def in_bounds(board: Board, row: int, col: int) -> bool:
    return 0 <= row < len(board) and 0 <= col < len(board[0])


def is_board_full(board: Board) -> bool:
    return all(cell is not None for line in board for cell in line)


def has_win(board: Board, row: int, col: int, player: str) -> bool:
    """Check whether the stone at (row, col) completes five or more in a row.

    Runs longer than five count as a win (overlines are not excluded).
    """
    for dr, dc in DIRECTIONS:
        count = 1

        # Extend in positive direction
        r, c = row + dr, col + dc
        while in_bounds(board, r, c) and board[r][c] == player:
            count += 1
            r, c = r + dr, c + dc

        # Extend in negative direction
        r, c = row - dr, col - dc
        while in_bounds(board, r, c) and board[r][c] == player:
            count += 1
            r, c = r - dr, c - dc

        if count >= WIN_LENGTH:
            return True

    return False


@dataclass(frozen=True)
class Move:
    row: int
    col: int
    player: str
    seq: int

    def to_dict(self) -> dict:
        return {"row": self.row, "col": self.col, "player": self.player, "seq": self.seq}

    @classmethod
    def from_dict(cls, data: dict, seq: int) -> Move:
        return cls(
            row=int(data["row"]),
            col=int(data["col"]),
            player=data["player"],
            seq=int(data.get("seq", seq)),
        )


@dataclass(frozen=True)
class GameState:
    board: Board = field(default_factory=empty_board)
    current_player: str = BLACK
    winner: str | None = None
    is_game_over: bool = False
    move_history: tuple[Move, ...] = ()

    @property
    def size(self) -> int:
        return len(self.board)

    @property
    def move_count(self) -> int:
        return len(self.move_history)

    def cell(self, row: int, col: int) -> Cell:
        return self.board[row][col]

    def board_as_lists(self) -> list[list[Cell]]:
        return [list(line) for line in self.board]


def new_game(size: int = BOARD_SIZE) -> GameState:
    return GameState(board=empty_board(size))


def apply_move(state: GameState, row: int, col: int) -> GameState:
    """Return the state after the current player places a stone at (row, col).

    An illegal move (game already over, cell occupied, or outside the board)
    returns ``state`` itself unchanged. ``current_player`` is toggled on every
    accepted move, including the one that ends the game, so on a finished
    state it does not mean "whose turn".
    """
    if state.is_game_over:
        return state
    if not in_bounds(state.board, row, col) or state.board[row][col] is not None:
        return state

    player = state.current_player
    line = list(state.board[row])
    line[col] = player
    board = state.board[:row] + (tuple(line),) + state.board[row + 1:]

    winner = player if has_win(board, row, col, player) else None
    is_game_over = winner is not None or is_board_full(board)

    move = Move(row=row, col=col, player=player, seq=len(state.move_history) + 1)
    return replace(
        state,
        board=board,
        current_player=opponent(player),
        winner=winner,
        is_game_over=is_game_over,
        move_history=state.move_history + (move,),
    )


def replay(moves: tuple[Move, ...] | list[Move], size: int = BOARD_SIZE) -> Board:
    """Rebuild a board by placing every move of a history on an empty grid."""
    grid = [[None] * size for _ in range(size)]
    for move in moves:
        grid[move.row][move.col] = move.player
    return tuple(tuple(line) for line in grid)
