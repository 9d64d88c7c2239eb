"""In-memory bookkeeping of the open disputes.

   Nothing here is persisted; a bot restart forgets every open dispute.
   Handlers that can outlive the registry (e.g. /decision in an old referee
   thread) fall back to what can be read back from Discord itself.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

import pendulum


@dataclass
class Dispute:
    """One dispute, keyed by its referee thread."""
    ref_thread_id: int
    dispute_thread_id: Optional[int]
    player1_id: int
    # Discord user ID, or a plain-text "@handle" if the opponent wasn't a
    # real mention, or None if no opponent was detected at all.
    player2: Union[int, str, None] = None
    issue_category: str = "Other"
    countries: tuple[str, ...] = ()
    summary: str = ""
    source_url: str = ""
    ref_thread_name: str = ""
    # Only set here for disputes raised outside a thread; thread disputes
    # keep theirs in DisputeRegistry.dispute_to_decision.
    decision_channel_id: Optional[int] = None
    opened_at: pendulum.DateTime = field(default_factory=pendulum.now)

    @property
    def players(self) -> list[int]:
        """Discord user IDs of the known players, author first."""
        ids = [self.player1_id]
        if isinstance(self.player2, int) and self.player2 != self.player1_id:
            ids.append(self.player2)
        return ids

    @property
    def label(self) -> str:
        """Short human readable description of this dispute."""
        if self.countries:
            text = " vs ".join(self.countries)
        else:
            text = self.ref_thread_name or f"Dispute {self.ref_thread_id}"
        if self.summary:
            text += f": {self.summary}"
        return text


class DisputeRegistry():
    """Object for containing the open disputes of the bot's guild."""
    def __init__(self):
        # dispute thread ID -> referee thread ID
        self.dispute_to_ref: dict[int, int] = {}
        # dispute thread ID -> decision channel ID
        self.dispute_to_decision: dict[int, int] = {}
        # player user ID -> referee thread IDs, oldest first
        self.player_threads: dict[int, list[int]] = {}
        # referee thread ID -> dispute
        self.disputes: dict[int, Dispute] = {}

    def __contains__(self, ref_thread_id) -> bool:
        return ref_thread_id in self.disputes

    def __len__(self) -> int:
        return len(self.disputes)

    def open(self, dispute: Dispute) -> Dispute:
        """Registers a dispute, or refreshes the record of an already
           registered referee thread. Links the player to the thread.
        """
        self.disputes[dispute.ref_thread_id] = dispute
        if dispute.dispute_thread_id is not None:
            self.dispute_to_ref[dispute.dispute_thread_id] = \
                dispute.ref_thread_id
        self.link_player(dispute.player1_id, dispute.ref_thread_id)
        return dispute

    def link_player(self, user_id: int, ref_thread_id: int) -> None:
        """Makes ref_thread_id the newest referee thread of this player."""
        threads = self.player_threads.setdefault(user_id, [])
        if ref_thread_id in threads:
            threads.remove(ref_thread_id)
        threads.append(ref_thread_id)

    def rebind(self, dispute_thread_id: int, ref_thread_id: int) -> None:
        """Points a dispute thread at a (new) referee thread, e.g. after the
           previous referee thread was deleted.
        """
        old_ref = self.dispute_to_ref.get(dispute_thread_id)
        if old_ref is not None and old_ref != ref_thread_id:
            self.forget_ref_thread(old_ref)
        self.dispute_to_ref[dispute_thread_id] = ref_thread_id

    def get(self, ref_thread_id: int) -> Optional[Dispute]:
        return self.disputes.get(ref_thread_id)

    def ref_thread_for(self, dispute_thread_id: int) -> Optional[int]:
        return self.dispute_to_ref.get(dispute_thread_id)

    def dispute_for_ref(self, ref_thread_id: int) -> Optional[int]:
        """Reverse lookup of the dispute thread of a referee thread."""
        dispute = self.disputes.get(ref_thread_id)
        if dispute is not None and dispute.dispute_thread_id is not None:
            return dispute.dispute_thread_id
        for dispute_id, ref_id in self.dispute_to_ref.items():
            if ref_id == ref_thread_id:
                return dispute_id
        return None

    def threads_for_player(self, user_id: int) -> list[int]:
        """Referee thread IDs the player is linked to, oldest first."""
        return list(self.player_threads.get(user_id, []))

    def latest_thread_for_player(self, user_id: int) -> Optional[int]:
        threads = self.player_threads.get(user_id)
        return threads[-1] if threads else None

    def set_decision_channel(self, dispute_thread_id: int,
                             channel_id: int) -> None:
        self.dispute_to_decision[dispute_thread_id] = channel_id

    def decision_channel_for(self, dispute_thread_id: Optional[int]
                             ) -> Optional[int]:
        if dispute_thread_id is None:
            return None
        return self.dispute_to_decision.get(dispute_thread_id)

    def decision_channel_for_ref(self, ref_thread_id: int) -> Optional[int]:
        """Decision channel of the dispute handled in this referee thread."""
        channel_id = self.decision_channel_for(
            self.dispute_for_ref(ref_thread_id))
        if channel_id is not None:
            return channel_id
        dispute = self.disputes.get(ref_thread_id)
        return dispute.decision_channel_id if dispute is not None else None

    def forget_ref_thread(self, ref_thread_id: int) -> None:
        """Unlinks a referee thread from every player and drops its record,
           but leaves the dispute thread mappings alone.
        """
        self.disputes.pop(ref_thread_id, None)
        for user_id in list(self.player_threads):
            threads = self.player_threads[user_id]
            if ref_thread_id in threads:
                threads.remove(ref_thread_id)
            if not threads:
                del self.player_threads[user_id]

    def close(self, ref_thread_id: int) -> Optional[Dispute]:
        """Removes every trace of a dispute, by its referee thread ID.
           Returns the closed dispute, or None if it wasn't open.
        """
        dispute = self.disputes.get(ref_thread_id)
        dispute_thread_id = self.dispute_for_ref(ref_thread_id)
        if dispute is None and dispute_thread_id is None:
            return None
        self.forget_ref_thread(ref_thread_id)
        if dispute_thread_id is not None:
            self.dispute_to_ref.pop(dispute_thread_id, None)
            self.dispute_to_decision.pop(dispute_thread_id, None)
        return dispute

    @property
    def open_disputes(self) -> list[Dispute]:
        """Open disputes, newest first."""
        return sorted(self.disputes.values(), key=lambda d: d.opened_at,
                      reverse=True)
