"""
Invitations Domain

Invitation lifecycle (accept, decline, propose a new time) and the
organizer's decision on proposals, including the event time change that
follows an accepted proposal.
"""
